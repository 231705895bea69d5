"""Query expansion for free-text plant and city names.

Users type names in Russian or English, with or without botanical precision.
The helpers here turn one raw string into extra candidate queries that English
speaking providers can match: a static RU->EN botanical dictionary and a
rule-based transliteration. Network-backed expansions (translation API, taxon
autocomplete) live in the catalog service.
"""

import re
from typing import Optional

_CYRILLIC = re.compile(r"[Ѐ-ӿ]")

_TRANSLIT = {
    "а": "a", "б": "b", "в": "v", "г": "g", "д": "d", "е": "e", "ё": "e",
    "ж": "zh", "з": "z", "и": "i", "й": "y", "к": "k", "л": "l", "м": "m",
    "н": "n", "о": "o", "п": "p", "р": "r", "с": "s", "т": "t", "у": "u",
    "ф": "f", "х": "h", "ц": "ts", "ч": "ch", "ш": "sh", "щ": "sch",
    "ъ": "", "ь": "", "ы": "y", "э": "e", "ю": "yu", "я": "ya",
}

# Common Russian houseplant names -> names English catalogs recognise.
RU_TO_EN = {
    "абутилон": "abutilon",
    "аглаонема": "aglaonema",
    "адениум": "adenium",
    "адиантум": "maidenhair fern",
    "азалия": "azalea",
    "алламанда": "allamanda",
    "алоэ": "aloe",
    "алоэ вера": "aloe vera",
    "альтернантера": "alternanthera",
    "амариллис": "amaryllis",
    "антуриум": "anthurium",
    "аспарагус": "asparagus fern",
    "аспидистра": "aspidistra",
    "аукуба": "aucuba",
    "ахименес": "achimenes",
    "бальзамин": "impatiens",
    "банан декоративный": "banana plant",
    "бегония": "begonia",
    "бегония рекс": "rex begonia",
    "бильбергия": "billbergia",
    "бокарнея": "ponytail palm",
    "бугенвиллия": "bougainvillea",
    "вашингтония": "washingtonia palm",
    "венерина мухоловка": "venus flytrap",
    "вриезия": "vriesea",
    "гардения": "gardenia",
    "герань": "geranium",
    "гибискус": "hibiscus",
    "гименокаллис": "hymenocallis",
    "гипоэстес": "hypoestes",
    "глоксиния": "gloxinia",
    "гузмания": "guzmania",
    "декабрист": "christmas cactus",
    "дендробиум": "dendrobium",
    "дионея": "venus flytrap",
    "дипладения": "mandevilla",
    "диффенбахия": "dieffenbachia",
    "долларовое дерево": "zamioculcas",
    "драцена": "dracaena",
    "драцена маргината": "dracaena marginata",
    "замиокулькас": "zamioculcas",
    "замиокулькас замиелистный": "zamioculcas zamiifolia",
    "зебрина": "tradescantia zebrina",
    "зигокактус": "christmas cactus",
    "ипомея батат": "ornamental sweet potato",
    "каладиум": "caladium",
    "каланхоэ": "kalanchoe",
    "калина комнатная": "viburnum",
    "каллисия": "callisia",
    "каллизия": "callisia",
    "калла": "calla lily",
    "камелия": "camellia",
    "камнеломка": "saxifraga",
    "кактус": "cactus",
    "кактус шлюмбергера": "christmas cactus",
    "каттлея": "cattleya",
    "колеус": "coleus",
    "колерия": "kohleria",
    "кордилина": "cordyline",
    "кофе арабика": "coffee plant",
    "крассула": "jade plant",
    "кротон": "croton",
    "кумкват": "kumquat",
    "лавр": "bay laurel",
    "лимон комнатный": "lemon tree",
    "литопс": "lithops",
    "мандарин комнатный": "mandarin tree",
    "маранта": "maranta",
    "мединилла": "medinilla",
    "мирт": "myrtle",
    "молочай": "euphorbia",
    "монстера": "monstera",
    "монстера делициоза": "monstera deliciosa",
    "нефролепис": "nephrolepis fern",
    "нолина": "ponytail palm",
    "олеандр": "oleander",
    "опунция": "prickly pear cactus",
    "орхидея": "orchid",
    "орхидея фаленопсис": "phalaenopsis",
    "орхидея дендробиум": "dendrobium",
    "пальма арека": "areca palm",
    "пальма хамедорея": "parlor palm",
    "папоротник": "fern",
    "пассифлора": "passionflower",
    "пахира": "money tree",
    "пахиподиум": "pachypodium",
    "пеларгония": "geranium",
    "пеперомия": "peperomia",
    "перец декоративный": "ornamental pepper",
    "плектрантус": "plectranthus",
    "плющ": "ivy",
    "плющ хедера": "english ivy",
    "подокарпус": "podocarpus",
    "потос": "pothos",
    "примула": "primrose",
    "пуансеттия": "poinsettia",
    "радермахера": "radermachera",
    "рео": "tradescantia spathacea",
    "рипсалис": "rhipsalis",
    "роза комнатная": "mini rose",
    "сансевиерия": "snake plant",
    "сансевьера": "snake plant",
    "сансевиерия трифасциата": "sansevieria trifasciata",
    "сенполия": "african violet",
    "сингониум": "syngonium",
    "солейролия": "soleirolia",
    "спатифиллум": "peace lily",
    "стрелиция": "bird of paradise",
    "стрептокарпус": "streptocarpus",
    "суккулент": "succulent",
    "тилландсия": "tillandsia",
    "толстянка": "jade plant",
    "традесканция": "tradescantia",
    "туя комнатная": "thuja",
    "узамбарская фиалка": "african violet",
    "фаленопсис": "phalaenopsis",
    "фатсия": "fatsia",
    "фиалка": "violet",
    "фикус": "ficus",
    "фикус бенджамина": "ficus benjamina",
    "фикус каучуконосный": "rubber plant",
    "филодендрон": "philodendron",
    "финиковая пальма": "date palm",
    "фиттония": "fittonia",
    "фуксия": "fuchsia",
    "хамедорея": "parlor palm",
    "хамеропс": "chamaerops",
    "хавортия": "haworthia",
    "хедера": "english ivy",
    "хлорофитум": "chlorophytum",
    "хойя": "hoya",
    "хризантема комнатная": "chrysanthemum",
    "циссус": "grape ivy",
    "циперус": "papyrus",
    "цитрус": "citrus",
    "шеффлера": "schefflera",
    "шлюмбергера": "christmas cactus",
    "эписция": "episcia",
    "эпипремнум": "pothos",
    "эуфорбия": "euphorbia",
    "юкка": "yucca",
}


def normalize_query(value: Optional[str]) -> str:
    """Trim, lowercase and fold "ё" into "е"."""
    return (value or "").strip().lower().replace("ё", "е")


def contains_cyrillic(text: str) -> bool:
    return bool(_CYRILLIC.search(text or ""))


def transliterate_ru_to_en(text: str) -> str:
    """Letter-by-letter Russian -> Latin; other characters pass through."""
    return "".join(_TRANSLIT.get(ch, ch) for ch in (text or "").lower()).strip()


def dictionary_translate(text: str) -> Optional[str]:
    """
    Look the name up in ``RU_TO_EN``.

    Exact match wins; otherwise the longest dictionary key contained in the
    text, so "белая орхидея фаленопсис" maps via its most specific entry.
    """
    key = normalize_query(text)
    if not key:
        return None
    direct = RU_TO_EN.get(key)
    if direct:
        return direct
    best = None
    for ru, en in RU_TO_EN.items():
        if ru in key and (best is None or len(ru) > len(best[0])):
            best = (ru, en)
    return best[1] if best else None


def capitalize_words(text: str) -> str:
    return " ".join(part[:1].upper() + part[1:] for part in (text or "").split())
