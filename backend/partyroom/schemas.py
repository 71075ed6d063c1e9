"""
Per-game payload schemas.

``settings`` and ``roundData`` are tagged unions keyed by ``gameType``: every
write goes through ``validate_settings`` / ``validate_round_data`` so the
shape stored for a room always matches its game.
"""

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as SchemaError

from partyroom.errors import ValidationError

EXACT_MATCH = 'exact_match'
NUMERIC_BANDED = 'numeric_banded'


class _Payload(BaseModel):
    model_config = ConfigDict(extra='ignore')


# ---- Settings ----

class BaseSettings(_Payload):
    rounds: int = Field(default=5, ge=1, le=50)
    roundDurationMs: int = Field(default=15000, ge=1000, le=600000)
    maxPlayers: int = Field(default=10, ge=1, le=50)


class ExactMatchSettings(BaseSettings):
    maxPoints: int = Field(default=100, ge=0)
    minPoints: int = Field(default=20, ge=0)
    fastAnswerMs: int = Field(default=3000, ge=0)


class NumericSettings(BaseSettings):
    tolerance: float = Field(default=10, gt=0, le=100)
    exactBand: float = Field(default=5, ge=0)
    tierPoints: List[int] = Field(default_factory=lambda: [1000, 600, 300], min_length=3, max_length=3)
    fastBonus: int = Field(default=200, ge=0)
    fastBonusMs: int = Field(default=5000, ge=0)


class FlagSettings(ExactMatchSettings):
    gameType: Literal['flag'] = 'flag'
    region: str = 'all'


class PokemonSettings(ExactMatchSettings):
    gameType: Literal['pokemon'] = 'pokemon'
    generation: int = Field(default=9, ge=1, le=9)


class LyricsSettings(ExactMatchSettings):
    gameType: Literal['lyrics'] = 'lyrics'
    artist: str = 'Stromae'


class PriceSettings(NumericSettings):
    gameType: Literal['price'] = 'price'
    category: str = 'all'


class PopulationSettings(NumericSettings):
    gameType: Literal['population'] = 'population'
    tolerance: float = Field(default=25, gt=0, le=100)


Settings = Annotated[
    Union[FlagSettings, PokemonSettings, LyricsSettings, PriceSettings, PopulationSettings],
    Field(discriminator='gameType'),
]


# ---- Challenges ----

class FlagChallenge(_Payload):
    name: str
    officialName: Optional[str] = None
    flagUrl: Optional[str] = None
    region: Optional[str] = None
    acceptedAnswers: List[str] = Field(default_factory=list)

    def accepted_answers(self):
        return [self.name] + ([self.officialName] if self.officialName else []) + list(self.acceptedAnswers)


class PokemonChallenge(_Payload):
    id: int
    names: Dict[str, str]
    imageUrl: Optional[str] = None
    generation: Optional[str] = None

    def accepted_answers(self):
        return list(self.names.values())


class LyricsChallenge(_Payload):
    artist: str
    title: str
    excerpt: str
    acceptedAnswers: List[str] = Field(default_factory=list)

    def accepted_answers(self):
        return [self.title] + list(self.acceptedAnswers)


class PriceChallenge(_Payload):
    id: Union[int, str]
    title: str
    price: float = Field(gt=0)
    image: Optional[str] = None
    currency: str = '$'
    category: Optional[str] = None

    def exact_value(self):
        return self.price


class PopulationChallenge(_Payload):
    name: str
    population: int = Field(gt=0)
    flagUrl: Optional[str] = None
    region: Optional[str] = None

    def exact_value(self):
        return self.population


class RoundResult(_Payload):
    playerId: str
    playerName: str
    answer: Optional[Union[str, int, float]] = None
    correct: bool = False
    difference: Optional[float] = None
    latencyMs: Optional[float] = None
    score: int = 0
    timeBonus: int = 0


# ---- Round data ----

class _RoundData(_Payload):
    queue: list = Field(default_factory=list)
    startTime: float
    endTime: float
    results: Optional[List[RoundResult]] = None


class FlagRound(_RoundData):
    gameType: Literal['flag'] = 'flag'
    challenge: FlagChallenge
    queue: List[FlagChallenge] = Field(default_factory=list)


class PokemonRound(_RoundData):
    gameType: Literal['pokemon'] = 'pokemon'
    challenge: PokemonChallenge
    queue: List[PokemonChallenge] = Field(default_factory=list)


class LyricsRound(_RoundData):
    gameType: Literal['lyrics'] = 'lyrics'
    challenge: LyricsChallenge
    queue: List[LyricsChallenge] = Field(default_factory=list)


class PriceRound(_RoundData):
    gameType: Literal['price'] = 'price'
    challenge: PriceChallenge
    queue: List[PriceChallenge] = Field(default_factory=list)


class PopulationRound(_RoundData):
    gameType: Literal['population'] = 'population'
    challenge: PopulationChallenge
    queue: List[PopulationChallenge] = Field(default_factory=list)


RoundData = Annotated[
    Union[FlagRound, PokemonRound, LyricsRound, PriceRound, PopulationRound],
    Field(discriminator='gameType'),
]


class GameSpec:
    def __init__(self, family, settings_model, challenge_model):
        self.family = family
        self.settings_model = settings_model
        self.challenge_model = challenge_model


GAME_TYPES: Dict[str, GameSpec] = {
    'flag': GameSpec(EXACT_MATCH, FlagSettings, FlagChallenge),
    'pokemon': GameSpec(EXACT_MATCH, PokemonSettings, PokemonChallenge),
    'lyrics': GameSpec(EXACT_MATCH, LyricsSettings, LyricsChallenge),
    'price': GameSpec(NUMERIC_BANDED, PriceSettings, PriceChallenge),
    'population': GameSpec(NUMERIC_BANDED, PopulationSettings, PopulationChallenge),
}

_settings_adapter = TypeAdapter(Settings)
_round_data_adapter = TypeAdapter(RoundData)


def _describe(exc: SchemaError) -> str:
    first = exc.errors()[0]
    where = '.'.join(str(p) for p in first.get('loc', ())) or 'payload'
    return f"{where}: {first.get('msg')}"


def game_spec(game_type: str) -> GameSpec:
    spec = GAME_TYPES.get(game_type) if isinstance(game_type, str) else None
    if spec is None:
        raise ValidationError(f'Unknown game type: {game_type!r}')
    return spec


def settings_payload(settings) -> dict:
    """Copy of a raw settings payload; anything but an object is rejected."""
    if settings is None:
        return {}
    if not isinstance(settings, dict):
        raise ValidationError('settings must be an object')
    return dict(settings)


def validate_base_settings(settings) -> dict:
    """Settings for a room that has not picked a game yet."""
    try:
        return BaseSettings.model_validate(settings_payload(settings)).model_dump()
    except SchemaError as exc:
        raise ValidationError(f'Invalid settings: {_describe(exc)}')


def validate_settings(game_type: str, settings: dict) -> dict:
    game_spec(game_type)
    payload = settings_payload(settings)
    payload['gameType'] = game_type
    try:
        return _settings_adapter.validate_python(payload).model_dump()
    except SchemaError as exc:
        raise ValidationError(f'Invalid settings: {_describe(exc)}')


def parse_settings(game_type: str, settings: dict):
    """Settings as a model, filling defaults for anything missing."""
    model = game_spec(game_type).settings_model
    try:
        return model.model_validate({**settings_payload(settings), 'gameType': game_type})
    except SchemaError as exc:
        raise ValidationError(f'Invalid settings: {_describe(exc)}')


def validate_challenges(game_type: str, challenges: list) -> list:
    model = game_spec(game_type).challenge_model
    if not isinstance(challenges, list):
        raise ValidationError('challenges must be a list')
    try:
        return [model.model_validate(c).model_dump() for c in challenges]
    except SchemaError as exc:
        raise ValidationError(f'Invalid challenge: {_describe(exc)}')


def validate_round_data(game_type: str, round_data: dict) -> dict:
    payload = dict(round_data or {})
    payload['gameType'] = game_type
    try:
        return _round_data_adapter.validate_python(payload).model_dump(exclude_none=True)
    except SchemaError as exc:
        raise ValidationError(f'Invalid round data: {_describe(exc)}')


def parse_challenge(game_type: str, challenge: dict):
    return game_spec(game_type).challenge_model.model_validate(challenge)
