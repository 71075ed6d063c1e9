import math
import unicodedata
from typing import Iterable, List, Optional, Tuple

from partyroom.schemas import EXACT_MATCH, game_spec, parse_challenge, parse_settings


def normalize_answer(text) -> str:
    """Casefold and strip accents so 'Éire ' matches 'eire'."""
    decomposed = unicodedata.normalize('NFD', str(text))
    stripped = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    return ' '.join(stripped.casefold().split())


def is_exact_match(answer, accepted: Iterable[str]) -> bool:
    if answer is None:
        return False
    given = normalize_answer(answer)
    if not given:
        return False
    return any(given == normalize_answer(a) for a in accepted if a)


def exact_match_points(correct: bool, latency_ms: float, duration_ms: float,
                       max_points: int, min_points: int, fast_answer_ms: float) -> int:
    """Discrete exact-match with latency tiers.

    Full marks up to ``fast_answer_ms``, then linear decay down to
    ``min_points`` at the round deadline. Wrong answers score 0.
    """
    if not correct:
        return 0
    latency_ms = max(0.0, float(latency_ms))
    if latency_ms <= fast_answer_ms:
        return int(max_points)
    if latency_ms >= duration_ms or duration_ms <= fast_answer_ms:
        return int(min_points)
    fraction = (latency_ms - fast_answer_ms) / (duration_ms - fast_answer_ms)
    return int(round(max_points - (max_points - min_points) * fraction))


def to_finite_number(answer) -> Optional[float]:
    """The answer as a finite float, or None when it is not one."""
    if answer is None or isinstance(answer, bool):
        return None
    try:
        if isinstance(answer, (int, float)):
            value = float(answer)
        else:
            value = float(str(answer).strip().replace(',', '.').replace(' ', ''))
    except (OverflowError, ValueError):
        return None
    # nan and inf count as non-numeric
    return value if math.isfinite(value) else None


def banded_points(answer, exact: float, latency_ms: float, tolerance: float,
                  exact_band: float = 5, tier_points=(1000, 600, 300),
                  fast_bonus: int = 200, fast_bonus_ms: float = 5000) -> Tuple[int, int, Optional[float]]:
    """Numeric-tolerance banded scoring.

    Returns ``(points, time_bonus, percent_diff)``; points already include
    the bonus. An answer that is not a number scores nothing.
    """
    value = to_finite_number(answer)
    if value is None or not exact:
        return 0, 0, None
    percent_diff = abs(value - exact) * 100 / abs(exact)
    top, mid, low = tier_points
    if percent_diff <= exact_band:
        points = top
    elif percent_diff <= tolerance:
        points = mid
    elif percent_diff <= tolerance * 2:
        points = low
    else:
        points = 0
    bonus = 0
    if points > 0 and 0 <= latency_ms <= fast_bonus_ms:
        bonus = fast_bonus
    return points + bonus, bonus, percent_diff


def score_round(game_type: str, settings: dict, round_data: dict, answers: dict, players: List[dict]) -> List[dict]:
    """Score every present player for the current round.

    Deterministic in its inputs: no clock, no store access. Players who did
    not answer get a zero-score row.
    """
    spec = game_spec(game_type)
    cfg = parse_settings(game_type, settings)
    challenge = parse_challenge(game_type, round_data['challenge'])
    start = float(round_data['startTime'])
    duration = float(round_data['endTime']) - start

    results = []
    for p in players:
        entry = answers.get(p['id'])
        row = {'playerId': p['id'], 'playerName': p['name'], 'answer': None,
               'correct': False, 'score': 0, 'timeBonus': 0}
        if entry is not None:
            answer = entry.get('answer')
            latency = float(entry.get('submittedAt', start)) - start
            row['answer'] = answer
            row['latencyMs'] = latency
            if spec.family == EXACT_MATCH:
                correct = is_exact_match(answer, challenge.accepted_answers())
                row['correct'] = correct
                row['score'] = exact_match_points(
                    correct, latency, duration, cfg.maxPoints, cfg.minPoints, cfg.fastAnswerMs,
                )
            else:
                exact = challenge.exact_value()
                points, bonus, pct = banded_points(
                    answer, exact, latency, cfg.tolerance, cfg.exactBand,
                    cfg.tierPoints, cfg.fastBonus, cfg.fastBonusMs,
                )
                value = to_finite_number(answer)
                row['score'] = points
                row['timeBonus'] = bonus
                row['correct'] = pct is not None and pct <= cfg.exactBand
                row['difference'] = abs(value - exact) if value is not None else None
        results.append(row)

    if spec.family == EXACT_MATCH:
        results.sort(key=lambda r: (-r['score'], r.get('latencyMs') is None, r.get('latencyMs') or 0))
    else:
        # Closest first, non-answers last
        results.sort(key=lambda r: (r.get('difference') is None, r.get('difference') or 0, -r['score']))
    return results
