from utils.text import extract_hashtags, extract_mentions, normalize_tags, slugify


def test_slugify_strips_diacritics_and_punctuation():
    assert slugify("Wi-Fi não conecta!") == "wi-fi-nao-conecta"
    assert slugify("  Celular   desliga sozinho?? ") == "celular-desliga-sozinho"
    assert slugify("Ação & Reação --- Çedilha") == "acao-reacao-cedilha"


def test_slugify_is_deterministic():
    assert slugify("Impressora não imprime") == slugify("Impressora não imprime")


def test_slugify_fallback_for_empty_result():
    assert slugify("!!!") == "topico"
    assert slugify("", fallback="problem") == "problem"


def test_extract_mentions_dedupes_in_order():
    assert extract_mentions("valeu @maria e @joao, @maria de novo") == ["maria", "joao"]
    assert extract_mentions("sem menções") == []


def test_extract_hashtags_lowercases():
    assert extract_hashtags("Problema no #WiFi depois do #update #wifi") == ["wifi", "update"]


def test_normalize_tags():
    assert normalize_tags([" #Roteador", "roteador", "", "Fibra "]) == ["roteador", "fibra"]
