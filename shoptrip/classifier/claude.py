"""Claude API classifier for product categorization."""

from __future__ import annotations

import json

from . import Classification
from .lookup import LookupClassifier

CATEGORIES = [
    "Produce",
    "Dairy & Eggs",
    "Meat & Seafood",
    "Pantry & Canned Goods",
    "Beverages",
    "Frozen Foods",
    "Bakery",
    "Health & Wellness",
    "Personal Care",
    "Household Items",
]

_PROMPT = """\
Classify this grocery product into the store section where a shopper would
find it in a typical US supermarket.

Product: {product_name}

Answer with JSON only, in this shape:
{{"category": "<category>", "confidence": <0.0-1.0>}}

The category must be one of:
{categories}

Use a confidence of 0.9-1.0 for unambiguous products, 0.6-0.9 when the
product could reasonably sit in more than one section, and below 0.6 if you
are guessing.
"""


class ClaudeClassifier(LookupClassifier):
    """Categorize products using Claude."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-5-20250929",
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self._api_key = api_key
        self._model = model

    async def _lookup(self, product_name: str) -> Classification:
        if not self._api_key:
            raise ValueError(
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install anthropic"
            ) from None

        prompt = _PROMPT.format(
            product_name=product_name, categories=", ".join(CATEGORIES)
        )
        client = anthropic.AsyncAnthropic(api_key=self._api_key)
        response = await client.messages.create(
            model=self._model,
            max_tokens=256,
            messages=[{"role": "user", "content": prompt}],
        )

        text = response.content[0].text
        return _parse_response(text)


def _parse_response(text: str) -> Classification:
    """Parse the JSON object from Claude's response.

    Raises:
        ValueError: If the reply is not JSON or names an unknown category.
    """
    # Strip markdown fences if present
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)

    data = json.loads(cleaned)
    category = data["category"]
    if category not in CATEGORIES:
        raise ValueError(f"Unknown category in response: {category!r}")
    confidence = min(max(float(data.get("confidence", 0.5)), 0.0), 1.0)
    return Classification(category=category, confidence=confidence)
