from enum import Enum


class Feature(str, Enum):
    """
    Gated features metered per billing period.

    Wire values are camelCase to match the mobile client. The legacy
    snake_case spellings used by older usage tables are accepted on parse.
    """

    NUMEROLOGY = "numerology"
    LOVE_MATCH = "loveMatch"
    TRUST_ASSESSMENT = "trustAssessment"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.replace("_", "").replace("-", "").lower()
            for member in cls:
                if member.value.lower() == normalized:
                    return member
        return None

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    def __repr__(self) -> str:
        return f"Feature.{self.name}"


_DISPLAY_NAMES = {
    Feature.NUMEROLOGY: "Numerology Readings",
    Feature.LOVE_MATCH: "Love Compatibility",
    Feature.TRUST_ASSESSMENT: "Trust Assessments",
}
