from plantcare.plants.query_expansion import (
    capitalize_words,
    contains_cyrillic,
    dictionary_translate,
    normalize_query,
    transliterate_ru_to_en,
)


def test_normalize_query_folds_yo():
    assert normalize_query("  Ёлка ") == "елка"
    assert normalize_query(None) == ""


def test_dictionary_exact_and_longest_contained_key():
    assert dictionary_translate("Фикус") == "ficus"
    assert dictionary_translate("фикус бенджамина") == "ficus benjamina"
    assert dictionary_translate("белая орхидея фаленопсис") == "phalaenopsis"
    assert dictionary_translate("моя любимая монстера") == "monstera"
    assert dictionary_translate("неизвестное") is None
    assert dictionary_translate("  ") is None


def test_transliteration():
    assert transliterate_ru_to_en("Щучий хвост") == "schuchiy hvost"
    assert transliterate_ru_to_en("пальма") == "palma"
    assert transliterate_ru_to_en("Aloe 2") == "aloe 2"


def test_contains_cyrillic():
    assert contains_cyrillic("aloe вера")
    assert not contains_cyrillic("aloe vera")
    assert not contains_cyrillic("")


def test_capitalize_words():
    assert capitalize_words("monstera  deliciosa") == "Monstera Deliciosa"
    assert capitalize_words("") == ""
