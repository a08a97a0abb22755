"""Indian states and union territories, used to split address spans."""

import re

STATES_AND_UNION_TERRITORIES: list[str] = [
    # States
    "Andhra Pradesh", "Arunachal Pradesh", "Assam", "Bihar", "Chhattisgarh",
    "Goa", "Gujarat", "Haryana", "Himachal Pradesh", "Jharkhand",
    "Karnataka", "Kerala", "Madhya Pradesh", "Maharashtra", "Manipur",
    "Meghalaya", "Mizoram", "Nagaland", "Odisha", "Punjab", "Rajasthan",
    "Sikkim", "Tamil Nadu", "Telangana", "Tripura", "Uttar Pradesh",
    "Uttarakhand", "West Bengal",
    # Union territories
    "Andaman and Nicobar Islands", "Chandigarh",
    "Dadra and Nagar Haveli and Daman and Diu", "Delhi",
    "Jammu and Kashmir", "Ladakh", "Lakshadweep", "Puducherry",
]

# Longest names first so multi-word names win over their prefixes.
_STATE_PATTERN = re.compile(
    r"\b("
    + "|".join(
        re.escape(name).replace(r"\ ", r"\s+")
        for name in sorted(STATES_AND_UNION_TERRITORIES, key=len, reverse=True)
    )
    + r")\b",
    re.IGNORECASE,
)
_CANONICAL = {name.lower(): name for name in STATES_AND_UNION_TERRITORIES}


def find_state(text: str) -> tuple[str, int, int] | None:
    """Find the first state or union territory named in ``text``.

    Returns:
        ``(canonical_name, start, end)`` of the match, or ``None``.
    """
    match = _STATE_PATTERN.search(text)
    if not match:
        return None
    key = " ".join(match.group(1).lower().split())
    return _CANONICAL[key], match.start(1), match.end(1)
