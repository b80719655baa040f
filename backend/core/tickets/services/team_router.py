"""
Deterministic team routing.

Keyword hits on the issue text outrank the classifier's category so that,
for example, a "Maintenance" report about a roommate dispute still lands
with the RAs. Anything that matches nothing goes to the RAs, who triage.
"""

from typing import Any, Dict, Optional

from tickets.constants import Category, RoutingKeywords, Team


def _matches(text: str, keywords) -> bool:
    return any(keyword in text for keyword in keywords)


def determine_team(fields: Dict[str, Any]) -> str:
    """
    Pick the queue ("ra" or "maintenance") for a set of ticket fields.

    A pre-set ``team`` is returned unchanged.
    """
    if fields.get("team"):
        return fields["team"]

    text = f"{fields.get('issue_type') or ''} {fields.get('summary') or ''}".lower()
    category = (fields.get("category") or "").strip().lower()

    if _matches(text, RoutingKeywords.RA) or category == Category.RESIDENT_LIFE.lower():
        return Team.RA
    if _matches(text, RoutingKeywords.MAINTENANCE) or category == Category.MAINTENANCE.lower():
        return Team.MAINTENANCE
    return Team.RA


def team_from_category(category: Optional[str]) -> Optional[str]:
    """Team implied by a category alone, or None if the category is unrecognised."""
    normalized = (category or "").strip().lower()
    if normalized == Category.RESIDENT_LIFE.lower():
        return Team.RA
    if normalized == Category.MAINTENANCE.lower():
        return Team.MAINTENANCE
    return None
