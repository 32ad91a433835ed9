from storefront.text import canonical_number, normalize, tokenize

# Accents, case and punctuation all go away
def test_normalize_strips_diacritics():
    assert normalize("Ánillo dorado") == "anillo dorado"
    assert normalize("  ¿Tienen  PULSERAS, de plata?  ") == "tienen pulseras de plata"

def test_normalize_is_idempotent():
    for s in ["Ánillo dorado", "Collar • $95 (6 en stock)", "ñandú\tÜber", ""]:
        once = normalize(s)
        assert normalize(once) == once

# Plurals are trimmed and stopwords dropped
def test_tokenize_singularizes_and_drops_stopwords():
    assert tokenize("Quiero anillos de la plata") == ["anillo", "plata"]

def test_tokenize_keeps_short_plural_and_drops_single_letters():
    # "aros" is only 4 chars long so it becomes "aro", "y" is too short
    assert tokenize("aros y mas") == ["aro", "mas"]

def test_canonical_number():
    assert canonical_number(50) == "50"
    assert canonical_number(50.0) == "50"
    assert canonical_number("12,5") == "12.5"
    assert canonical_number(" 100 ") == "100"
    assert canonical_number("abc") == ""
    assert canonical_number(float("inf")) == ""
    assert canonical_number(True) == ""
    assert canonical_number(None) == ""
