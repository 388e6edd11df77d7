"""Default category inference from free-text descriptions."""

import re
import unicodedata

DEFAULT_CATEGORY = "Other"

EXPENSE_KEYWORDS: dict[str, list[str]] = {
    "Food": [
        "food", "lunch", "dinner", "breakfast", "meal", "restaurant", "coffee",
        "snack", "pizza", "burger", "groceries", "grocery", "supermarket",
        "bakery", "ifood", "almoco", "jantar", "cafe", "lanche", "comida",
        "mercado", "padaria", "restaurante",
    ],
    "Transport": [
        "uber", "taxi", "bus", "train", "metro", "subway", "fuel", "gas station",
        "petrol", "parking", "toll", "tires", "tire", "bodywork", "mechanic",
        "car", "flight", "gasolina", "combustivel", "onibus", "estacionamento",
        "pedagio", "pneu", "lataria", "oficina", "carro",
    ],
    "Health": [
        "doctor", "pharmacy", "medicine", "hospital", "dentist", "therapy",
        "gym", "health insurance", "medico", "farmacia", "remedio", "dentista",
        "academia", "plano de saude",
    ],
    "Education": [
        "course", "school", "tuition", "books", "book", "university", "class",
        "curso", "escola", "faculdade", "livro", "livros", "mensalidade escolar",
    ],
    "Leisure": [
        "movie", "cinema", "netflix", "spotify", "concert", "show", "bar",
        "beer", "drinks", "party", "game", "games", "travel", "trip", "filme",
        "cerveja", "festa", "jogo", "viagem", "passeio",
    ],
    "Housing": [
        "rent", "mortgage", "electricity", "water bill", "internet", "condo",
        "aluguel", "luz", "energia", "conta de agua", "condominio",
    ],
    "Clothing": [
        "clothes", "shirt", "shoes", "sneakers", "jacket", "dress", "pants",
        "roupa", "roupas", "camisa", "camiseta", "sapato", "tenis", "calca",
        "vestido",
    ],
}

INCOME_KEYWORDS: dict[str, list[str]] = {
    "Salary": [
        "salary", "paycheck", "wage", "wages", "payroll", "bonus", "salario",
        "pagamento do mes", "decimo terceiro",
    ],
    "Freelance": [
        "freelance", "freela", "gig", "client", "project", "consulting",
        "cliente", "projeto", "consultoria", "bico",
    ],
    "Investments": [
        "dividends", "dividend", "interest", "investment", "investments",
        "stocks", "yield", "dividendos", "juros", "investimento",
        "investimentos", "rendimento", "acoes",
    ],
}

DEFAULT_CATEGORIES: dict[str, list[str]] = {
    "expense": [*EXPENSE_KEYWORDS, DEFAULT_CATEGORY],
    "income": [*INCOME_KEYWORDS, DEFAULT_CATEGORY],
}


def normalize_text(text: str) -> str:
    """Lowercase and strip diacritics ('Almoço' -> 'almoco')."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return re.sub(r"\s+", " ", stripped.lower()).strip()


def _build_index(table: dict[str, list[str]]) -> list[tuple[re.Pattern, int, str]]:
    index = []
    for category, keywords in table.items():
        for keyword in keywords:
            pattern = re.compile(rf"\b{re.escape(normalize_text(keyword))}\b")
            index.append((pattern, len(keyword), category))
    return index


_INDEX = {
    "expense": _build_index(EXPENSE_KEYWORDS),
    "income": _build_index(INCOME_KEYWORDS),
}


def infer_category(description: str, kind: str) -> str:
    """Pick a category for ``description``; the longest matching keyword wins.

    Ties on keyword length go to the category listed first in the table.
    """
    text = normalize_text(description)
    if not text:
        return DEFAULT_CATEGORY

    best: tuple[int, str] | None = None
    for pattern, length, category in _INDEX.get(kind, _INDEX["expense"]):
        if pattern.search(text) and (best is None or length > best[0]):
            best = (length, category)

    return best[1] if best else DEFAULT_CATEGORY
