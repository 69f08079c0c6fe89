"""Keyword-based fast-path classifier."""

from __future__ import annotations

from . import Classification, Classifier

FALLBACK_CATEGORY = "Pantry & Canned Goods"

# Checked before everything else: these names contain words that would
# otherwise match a food category ("paper towel", "peanut butter").
_PRIORITY_KEYWORDS: dict[str, list[str]] = {
    "Household Items": ["toilet paper", "paper towel", "tissue", "napkin"],
    "Pantry & Canned Goods": ["peanut butter", "quinoa", "chia seed"],
    "Produce": ["avocado", "bell pepper"],
}

# Order matters: first matching category wins.
_CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Personal Care": [
        "shampoo", "conditioner", "toothpaste", "deodorant", "soap",
        "lotion", "sunscreen",
    ],
    "Household Items": [
        "cleaner", "detergent", "bleach", "trash bag", "sponge", "foil",
    ],
    "Health & Wellness": ["vitamin", "supplement", "medicine", "probiotic"],
    "Frozen Foods": ["frozen", "ice cream", "popsicle", "pizza"],
    "Produce": [
        "banana", "apple", "orange", "grape", "strawberr", "blueberr",
        "melon", "lemon", "lime", "tomato", "onion", "carrot", "potato",
        "lettuce", "spinach", "kale", "broccoli", "pepper", "cucumber",
        "celery", "garlic", "mushroom", "eggplant", "cilantro", "basil",
    ],
    "Dairy & Eggs": ["milk", "cheese", "yogurt", "butter", "cream", "egg"],
    "Meat & Seafood": [
        "beef", "chicken", "pork", "turkey", "bacon", "sausage", "ham",
        "steak", "fish", "salmon", "tuna", "shrimp", "cod", "meat",
    ],
    "Bakery": [
        "bread", "loaf", "bagel", "muffin", "roll", "tortilla", "croissant",
    ],
    "Beverages": ["water", "juice", "soda", "coffee", "tea", "beer", "wine"],
    "Pantry & Canned Goods": [
        "rice", "pasta", "cereal", "flour", "sugar", "oil", "vinegar",
        "sauce", "soup", "bean", "canned", "chip", "cracker",
    ],
}


class HeuristicClassifier(Classifier):
    """Classify product names by keyword containment."""

    def __init__(
        self,
        keywords: dict[str, list[str]] | None = None,
        match_confidence: float = 0.8,
        fallback_confidence: float = 0.3,
    ) -> None:
        self._keywords = keywords if keywords is not None else _CATEGORY_KEYWORDS
        self._match_confidence = match_confidence
        self._fallback_confidence = fallback_confidence

    def classify(self, product_name: str) -> Classification:
        name = product_name.lower().strip()

        for category, words in _PRIORITY_KEYWORDS.items():
            if any(w in name for w in words):
                return Classification(category, 0.95)

        for category, words in self._keywords.items():
            if any(w in name for w in words):
                return Classification(category, self._match_confidence)

        return Classification(FALLBACK_CATEGORY, self._fallback_confidence)
