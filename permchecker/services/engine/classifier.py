"""Permission classifier.

Maps a permission identifier (``android.permission.CAMERA``) to a category
label and a human-readable name. Both mappings are total, pure and
deterministic.

Categories come from an ordered rule table. Each rule lists lowercase
keywords that are matched as substrings of the lowercased identifier; the
first rule with a matching keyword wins. Order matters: an identifier
containing both ``phone`` and ``sms`` resolves to ``Phone`` because the
Phone rule precedes the SMS rule.
"""

from dataclasses import dataclass

OTHER_CATEGORY = "Other"


@dataclass(frozen=True)
class CategoryRule:
    """A category label and the keywords that select it."""

    category: str
    keywords: tuple[str, ...]

    def matches(self, identifier: str) -> bool:
        lowered = identifier.lower()
        return any(keyword in lowered for keyword in self.keywords)


CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule("Camera", ("camera",)),
    CategoryRule("Location", ("location", "gps")),
    CategoryRule("Microphone", ("microphone", "record_audio")),
    CategoryRule("Storage", ("storage", "external_storage")),
    CategoryRule("Contacts", ("contacts",)),
    CategoryRule("Phone", ("phone", "call")),
    CategoryRule("SMS", ("sms", "message")),
    CategoryRule("Calendar", ("calendar",)),
    CategoryRule("Bluetooth", ("bluetooth",)),
)

CATEGORIES: tuple[str, ...] = tuple(rule.category for rule in CATEGORY_RULES) + (OTHER_CATEGORY,)


def categorize(identifier: str, rules: tuple[CategoryRule, ...] = CATEGORY_RULES) -> str:
    """Return the category of the first rule matching ``identifier``."""
    for rule in rules:
        if rule.matches(identifier):
            return rule.category
    return OTHER_CATEGORY


def readable_name(identifier: str) -> str:
    """Turn ``android.permission.READ_PHONE_STATE`` into ``Read Phone State``."""
    tail = identifier.rsplit(".", 1)[-1]
    words = tail.lower().split("_")
    return " ".join(word[:1].upper() + word[1:] for word in words)


def classify(identifier: str) -> tuple[str, str]:
    """Classify a permission identifier.

    Args:
        identifier: Namespaced permission identifier.

    Returns:
        Tuple of ``(category, readable_name)``.
    """
    return categorize(identifier), readable_name(identifier)
