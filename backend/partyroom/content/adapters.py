"""
Content adapters: one per game type.

Each adapter pulls raw data from a public source through ``httpx``, keeps
the raw payload in the shared ``ContentCache`` and turns it into challenge
dicts. Any transport or decoding failure becomes ``UpstreamUnavailable``;
``fetch_challenges`` recovers from it with the fixed fallback dataset.
Nothing is retried.
"""

import logging
import random
import re
from typing import Callable, Dict, List, Tuple

import httpx

from partyroom.errors import UpstreamUnavailable, ValidationError
from partyroom.schemas import game_spec, parse_settings, validate_challenges
from partyroom.services.scoring import normalize_answer
from partyroom.content.cache import ContentCache
from partyroom.content.fallback import DATASETS

logger = logging.getLogger(__name__)

RESTCOUNTRIES_URL = 'https://restcountries.com/v3.1'
DUMMYJSON_URL = 'https://dummyjson.com/products?limit=0'
FAKESTORE_URL = 'https://fakestoreapi.com/products'
POKEAPI_URL = 'https://pokeapi.co/api/v2'
ITUNES_URL = 'https://itunes.apple.com/search'
LYRICS_URL = 'https://api.lyrics.ovh/v1'

PRICE_CATEGORIES = {
    'tech': ['smartphones', 'laptops', 'mobile-accessories', 'tablets'],
    'food': ['groceries'],
    'fashion': ['mens-shirts', 'mens-shoes', 'womens-dresses', 'womens-shoes', 'womens-watches',
                'womens-bags', 'womens-jewellery', 'sunglasses', 'tops'],
    'home': ['home-decoration', 'furniture', 'lighting', 'kitchen-accessories'],
    'luxury': ['fragrances', 'skincare', 'automotive', 'motorcycle', 'sports-accessories'],
}

POKEMON_GENERATIONS = {
    1: (1, 151), 2: (152, 251), 3: (252, 386), 4: (387, 493), 5: (494, 649),
    6: (650, 721), 7: (722, 809), 8: (810, 905), 9: (906, 1025),
}


def get_json(http: httpx.Client, url: str, source: str, params=None):
    try:
        response = http.get(url, params=params)
        response.raise_for_status()
        return response.json()
    except httpx.HTTPError as exc:
        raise UpstreamUnavailable(source, str(exc) or type(exc).__name__)
    except ValueError as exc:
        raise UpstreamUnavailable(source, f'invalid JSON: {exc}')


# ---- Countries (flag, population) ----

def _countries(http, cache, region, fields):
    path = 'all' if region in (None, '', 'all') else f'region/{region}'
    url = f'{RESTCOUNTRIES_URL}/{path}'
    key = f'restcountries:{path}:{fields}'
    return cache.get_or_load(key, lambda: get_json(http, url, 'restcountries', params={'fields': fields}))


def _flag_url(country):
    flags = country.get('flags') or {}
    return flags.get('png') or flags.get('svg')


def fetch_flags(http, cache, settings, count, rng) -> List[dict]:
    countries = _countries(http, cache, settings.region, 'name,flags,region,translations')
    picked = rng.sample(countries, min(count, len(countries)))
    out = []
    for c in picked:
        name = c.get('name') or {}
        fra = (c.get('translations') or {}).get('fra') or {}
        out.append({
            'name': name.get('common'),
            'officialName': name.get('official'),
            'flagUrl': _flag_url(c),
            'region': c.get('region'),
            'acceptedAnswers': [n for n in (fra.get('common'), fra.get('official')) if n],
        })
    return out


def fetch_populations(http, cache, settings, count, rng) -> List[dict]:
    countries = _countries(http, cache, 'all', 'name,population,flags,region')
    # Tiny territories make for obscure rounds
    eligible = [c for c in countries if (c.get('population') or 0) > 100000]
    picked = rng.sample(eligible, min(count, len(eligible)))
    return [{
        'name': (c.get('name') or {}).get('common'),
        'population': c['population'],
        'flagUrl': _flag_url(c),
        'region': c.get('region'),
    } for c in picked]


# ---- Products (price) ----

def _load_products(http):
    try:
        data = get_json(http, DUMMYJSON_URL, 'dummyjson')
        return [{
            'id': p['id'], 'title': p['title'], 'price': p['price'],
            'image': p.get('thumbnail') or (p.get('images') or [''])[0],
            'category': p.get('category'), 'currency': '$',
        } for p in data.get('products', [])]
    except UpstreamUnavailable as exc:
        logger.warning(f"[content] {exc.message}; trying fakestore")
    data = get_json(http, FAKESTORE_URL, 'fakestore')
    return [{
        'id': f"fs-{p['id']}", 'title': p['title'], 'price': p['price'],
        'image': p.get('image'), 'category': p.get('category'), 'currency': '$',
    } for p in data]


def fetch_products(http, cache, settings, count, rng) -> List[dict]:
    products = cache.get_or_load('products', lambda: _load_products(http))
    allowed = PRICE_CATEGORIES.get(settings.category)
    if allowed:
        products = [p for p in products if p.get('category') in allowed]
    products = [p for p in products if (p.get('price') or 0) > 0]
    if not products:
        raise UpstreamUnavailable('products', f'no products for category {settings.category!r}')
    return rng.sample(products, min(count, len(products)))


# ---- Pokemon ----

def _pokemon(http, cache, pokemon_id):
    def load():
        species = get_json(http, f'{POKEAPI_URL}/pokemon-species/{pokemon_id}', 'pokeapi')
        pokemon = get_json(http, f'{POKEAPI_URL}/pokemon/{pokemon_id}', 'pokeapi')
        names = {n['language']['name']: n['name'] for n in species.get('names', [])}
        if (pokemon.get('species') or {}).get('name'):
            names['species'] = pokemon['species']['name']
        artwork = ((pokemon.get('sprites') or {}).get('other') or {}).get('official-artwork') or {}
        return {
            'id': pokemon_id,
            'names': names,
            'imageUrl': artwork.get('front_default'),
            'generation': (species.get('generation') or {}).get('name'),
        }
    return cache.get_or_load(f'pokemon:{pokemon_id}', load)


def fetch_pokemon(http, cache, settings, count, rng) -> List[dict]:
    low, high = POKEMON_GENERATIONS.get(settings.generation, POKEMON_GENERATIONS[9])
    ids = rng.sample(range(low, high + 1), min(count, high - low + 1))
    return [_pokemon(http, cache, pid) for pid in ids]


# ---- Lyrics ----

def _songs(http, cache, artist):
    def load():
        data = get_json(http, ITUNES_URL, 'itunes', params={'term': artist, 'entity': 'song', 'limit': 50})
        wanted = normalize_answer(artist)
        return [s for s in data.get('results', [])
                if wanted in normalize_answer(s.get('artistName', '')) or normalize_answer(s.get('artistName', '')) in wanted]
    return cache.get_or_load(f'itunes:{artist.lower()}', load)


def pick_excerpt(lyrics: str, rng) -> str:
    stanzas = [s.strip() for s in re.split(r'\n\s*\n+', lyrics) if s.strip()]
    valid = [s for s in stanzas if 2 <= len(s.splitlines()) <= 6]
    if valid:
        return rng.choice(valid)
    lines = [line for line in lyrics.splitlines() if line.strip()]
    return '\n'.join(lines[:4])


def _lyrics(http, cache, artist, title):
    def load():
        clean = re.sub(r'\(.*?\)', '', title)
        clean = re.sub(r'feat\..*', '', clean, flags=re.IGNORECASE).strip()
        data = get_json(http, f'{LYRICS_URL}/{artist}/{clean}', 'lyrics.ovh')
        return data.get('lyrics') or ''
    return cache.get_or_load(f'lyrics:{artist.lower()}:{title.lower()}', load)


def fetch_lyrics(http, cache, settings, count, rng) -> List[dict]:
    songs = _songs(http, cache, settings.artist)
    out, seen = [], set()
    for song in rng.sample(songs, len(songs)):
        title = song.get('trackName')
        if not title or title.lower() in seen:
            continue
        seen.add(title.lower())
        try:
            text = _lyrics(http, cache, song.get('artistName', settings.artist), title)
        except UpstreamUnavailable:
            continue
        if not text:
            continue
        out.append({'artist': song.get('artistName', settings.artist), 'title': title,
                    'excerpt': pick_excerpt(text, rng), 'acceptedAnswers': []})
        if len(out) >= count:
            break
    if not out:
        raise UpstreamUnavailable('lyrics.ovh', f'no lyrics found for {settings.artist!r}')
    return out


ADAPTERS: Dict[str, Callable] = {
    'flag': fetch_flags,
    'population': fetch_populations,
    'price': fetch_products,
    'pokemon': fetch_pokemon,
    'lyrics': fetch_lyrics,
}


def fallback_challenges(game_type: str, count: int, rng=None) -> List[dict]:
    rng = rng or random
    dataset = DATASETS[game_type]
    picked = rng.sample(dataset, min(count, len(dataset)))
    # Pad by cycling when more rounds were asked for than the dataset holds
    while len(picked) < count:
        picked.append(dataset[len(picked) % len(dataset)])
    return [dict(c) for c in picked]


def fetch_challenges(game_type: str, settings: dict, count: int, cache: ContentCache,
                     timeout: float = 5.0, http: httpx.Client = None, rng=None) -> Tuple[List[dict], bool]:
    """Fetch ``count`` challenges for ``game_type``.

    Returns ``(challenges, degraded)``. ``degraded`` is True when the
    upstream source failed and the fallback dataset was substituted.
    """
    game_spec(game_type)
    cfg = parse_settings(game_type, settings)
    rng = rng or random
    count = max(1, int(count))
    adapter = ADAPTERS[game_type]
    own_client = http is None
    if own_client:
        http = httpx.Client(timeout=timeout, follow_redirects=True)
    try:
        try:
            challenges = adapter(http, cache, cfg, count, rng)
        except (KeyError, TypeError, AttributeError) as exc:
            raise UpstreamUnavailable(game_type, f'unexpected payload shape: {exc!r}')
        try:
            return validate_challenges(game_type, challenges), False
        except ValidationError as exc:
            raise UpstreamUnavailable(game_type, exc.message)
    except UpstreamUnavailable as exc:
        logger.warning(f"[content-fallback] game={game_type} {exc.message}")
        return validate_challenges(game_type, fallback_challenges(game_type, count, rng)), True
    finally:
        if own_client:
            http.close()
