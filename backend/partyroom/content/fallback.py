"""Fixed datasets served when an upstream content source is unavailable."""

FLAGS = [
    {'name': 'France', 'officialName': 'French Republic', 'flagUrl': 'https://flagcdn.com/w320/fr.png',
     'region': 'Europe', 'acceptedAnswers': ['France', 'République française']},
    {'name': 'Japan', 'officialName': 'Japan', 'flagUrl': 'https://flagcdn.com/w320/jp.png',
     'region': 'Asia', 'acceptedAnswers': ['Japon']},
    {'name': 'Brazil', 'officialName': 'Federative Republic of Brazil', 'flagUrl': 'https://flagcdn.com/w320/br.png',
     'region': 'Americas', 'acceptedAnswers': ['Brésil']},
    {'name': 'Kenya', 'officialName': 'Republic of Kenya', 'flagUrl': 'https://flagcdn.com/w320/ke.png',
     'region': 'Africa', 'acceptedAnswers': ['Kenya']},
    {'name': 'Canada', 'officialName': 'Canada', 'flagUrl': 'https://flagcdn.com/w320/ca.png',
     'region': 'Americas', 'acceptedAnswers': ['Canada']},
    {'name': 'Germany', 'officialName': 'Federal Republic of Germany', 'flagUrl': 'https://flagcdn.com/w320/de.png',
     'region': 'Europe', 'acceptedAnswers': ['Allemagne']},
]

POPULATIONS = [
    {'name': 'France', 'population': 67391582, 'flagUrl': 'https://flagcdn.com/w320/fr.png', 'region': 'Europe'},
    {'name': 'Japan', 'population': 125836021, 'flagUrl': 'https://flagcdn.com/w320/jp.png', 'region': 'Asia'},
    {'name': 'Brazil', 'population': 212559409, 'flagUrl': 'https://flagcdn.com/w320/br.png', 'region': 'Americas'},
    {'name': 'Kenya', 'population': 53771300, 'flagUrl': 'https://flagcdn.com/w320/ke.png', 'region': 'Africa'},
    {'name': 'Canada', 'population': 38005238, 'flagUrl': 'https://flagcdn.com/w320/ca.png', 'region': 'Americas'},
    {'name': 'Iceland', 'population': 366425, 'flagUrl': 'https://flagcdn.com/w320/is.png', 'region': 'Europe'},
]

PRODUCTS = [
    {'id': 'mock1', 'title': 'iPhone 13 Pro', 'price': 999,
     'image': 'https://dummyjson.com/image/i/products/1/thumbnail.jpg', 'currency': '$', 'category': 'smartphones'},
    {'id': 'mock2', 'title': 'Samsung Universe 9', 'price': 1249,
     'image': 'https://dummyjson.com/image/i/products/2/thumbnail.jpg', 'currency': '$', 'category': 'smartphones'},
    {'id': 'mock3', 'title': 'OPPOF19', 'price': 280,
     'image': 'https://dummyjson.com/image/i/products/4/thumbnail.jpg', 'currency': '$', 'category': 'smartphones'},
]

POKEMON = [
    {'id': 25, 'names': {'en': 'Pikachu', 'fr': 'Pikachu', 'ja': 'ピカチュウ'},
     'imageUrl': 'https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon/other/official-artwork/25.png',
     'generation': 'generation-i'},
    {'id': 4, 'names': {'en': 'Charmander', 'fr': 'Salamèche', 'de': 'Glumanda'},
     'imageUrl': 'https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon/other/official-artwork/4.png',
     'generation': 'generation-i'},
    {'id': 7, 'names': {'en': 'Squirtle', 'fr': 'Carapuce', 'de': 'Schiggy'},
     'imageUrl': 'https://raw.githubusercontent.com/PokeAPI/sprites/master/sprites/pokemon/other/official-artwork/7.png',
     'generation': 'generation-i'},
]

LYRICS = [
    {'artist': 'Stromae', 'title': 'Alors on danse',
     'excerpt': "Qui dit études dit travail\nQui dit taf te dit les thunes", 'acceptedAnswers': ['Alors on danse']},
    {'artist': 'Stromae', 'title': 'Papaoutai',
     'excerpt': "Dites-moi d'où il vient\nEnfin je saurais où je vais", 'acceptedAnswers': []},
    {'artist': 'Stromae', 'title': 'Formidable',
     'excerpt': "Tu étais formidable, j'étais fort minable\nNous étions formidables", 'acceptedAnswers': []},
]

DATASETS = {
    'flag': FLAGS,
    'population': POPULATIONS,
    'price': PRODUCTS,
    'pokemon': POKEMON,
    'lyrics': LYRICS,
}
