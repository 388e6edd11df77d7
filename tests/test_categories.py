import pytest

from pocketledger.ledger.categories import DEFAULT_CATEGORY, infer_category, normalize_text


@pytest.mark.parametrize(
    "description, kind, expected",
    [
        ("lunch with the team", "expense", "Food"),
        ("Almoço no centro", "expense", "Food"),
        ("UBER to the airport", "expense", "Transport"),
        ("pneu novo", "expense", "Transport"),
        ("pharmacy", "expense", "Health"),
        ("monthly rent", "expense", "Housing"),
        ("new shoes", "expense", "Clothing"),
        ("netflix", "expense", "Leisure"),
        ("salary", "income", "Salary"),
        ("Salário de julho", "income", "Salary"),
        ("freelance logo project", "income", "Freelance"),
        ("dividends", "income", "Investments"),
    ],
)
def test_keywords_map_to_categories(description, kind, expected):
    assert infer_category(description, kind) == expected


def test_longest_keyword_wins():
    # "gas station" (Transport) beats the shorter "station"-less matches
    assert infer_category("coffee at the gas station", "expense") == "Transport"


def test_keywords_match_whole_words_only():
    assert infer_category("carpet", "expense") == DEFAULT_CATEGORY


def test_kind_selects_the_table():
    assert infer_category("salary", "expense") == DEFAULT_CATEGORY
    assert infer_category("lunch", "income") == DEFAULT_CATEGORY


@pytest.mark.parametrize("description", ["", "   ", "qwerty", "!!!"])
def test_unmatched_input_gets_default(description):
    assert infer_category(description, "expense") == DEFAULT_CATEGORY


def test_inference_is_idempotent():
    first = infer_category("dinner and drinks", "expense")
    assert first == infer_category("dinner and drinks", "expense")
    assert first


def test_normalize_text_folds_case_and_diacritics():
    assert normalize_text("  Almoço  NO   Café ") == "almoco no cafe"
