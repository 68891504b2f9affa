"""Lookup tables and small calculations shared by the BinaryBeast models."""

import math
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from ..models.tournament import Tournament

RESULT_SUCCESS = 200
# Local code for requests that never produced an API result
RESULT_TRANSPORT_ERROR = -1

TOURNEY_TYPE_BRACKETS = 0
TOURNEY_TYPE_CUP = 1

RESULT_CODES: dict[int, str] = {
    RESULT_TRANSPORT_ERROR: "Unable to reach the BinaryBeast API",
    200: "Success",
    401: "Login Failed",
    403: "Authentication error - you are not allowed to delete / update that object",
    404: "Generic not found error - Either an invalid *_id or invalid service name",
    405: "Your account is not permitted to call that particular service",
    406: "Incorrect / Invalid E-Mail address",
    415: "E-Mail address is already in use",
    416: "Malformed E-Mail address",
    418: "E-Mail address is currently pending activation",
    425: "Your account is banned!",
    450: "Incorrect Password",
    461: "Invalid game_code",
    465: "Invalid bracket number",
    470: "Duplicate entry",
    500: "Generic error, likely something wrong on BinaryBeast's end",
    601: "The filter value provided is too short",
    604: "Invalid user_id",
    704: "Tournament not found / invalid tourney_id",
    705: "Provided tourney_team_id and tourney_id do not match!",
    706: "Team not found / invalid tourney_team_id",
    708: "Match not found / invalid tourney_match_id",
    709: "Match Game not found / invalid tourney_match_game_id",
    711: "Tournament does not have enough teams to fill the number of groups",
    715: "The tournament's current status does not allow this action",
}

TOURNAMENT_TYPES = {TOURNEY_TYPE_BRACKETS: "Elimination Brackets", TOURNEY_TYPE_CUP: "Cup"}

BRACKET_LABELS = [
    "Groups",
    "Winners Bracket",
    "Losers Bracket",
    "Finals",
    "Bronze Bracket (3rd place)",
]
BRACKET_LABELS_SHORT = ["groups", "winners", "losers", "finals", "bronze"]

GROUP_LABELS = [chr(c) for c in range(ord("A"), ord("Z") + 1)]

ACTIVE_STATUSES = ("Active", "Active-Groups", "Active-Brackets", "Complete")


def translate(value: Any, translations: Mapping | list) -> Any:
    """Look up a translation, returning the value itself when undefined"""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        return value

    if isinstance(translations, list):
        try:
            index = int(value)
        except ValueError:
            return value
        if 0 <= index < len(translations):
            return translations[index]
        return value

    if value in translations:
        return translations[value]
    # Codes frequently arrive as strings from the JSON API
    if isinstance(value, str) and value.lstrip("-").isdigit():
        return translations.get(int(value), value)
    return value


def translate_result(result: Any) -> Any:
    return translate(result, RESULT_CODES)


def get_bracket_label(bracket: int, short: bool = False) -> Any:
    """Friendly name for a bracket number (0 = groups, 1 = winners, ...)"""
    return translate(bracket, BRACKET_LABELS_SHORT if short else BRACKET_LABELS)


def get_bracket_size(players: int) -> int:
    """Smallest power of two that fits the given number of players (2..1024)"""
    if players < 2:
        return 2
    if players > 1024:
        return 1024
    while players & (players - 1):
        players += 1
    return players


def get_winner_rounds(players: int) -> float:
    return math.log2(players)


def get_loser_rounds(players: int) -> float:
    """Winners rounds plus the rounds of a bracket half the size, minus one"""
    return get_winner_rounds(players) + get_winner_rounds(players / 2) - 1


def get_group_size(tournament: "Tournament") -> int:
    """Number of teams per group, or 0 when the groups can't be filled"""
    group_count = tournament.get("group_count") or 0
    if not group_count:
        return 0

    size = len(tournament.get_confirmed_team_ids()) / group_count

    # At least two teams per group
    if size < 2:
        return 0
    return math.ceil(size)


def translate_tournament_type_id(type_id: int) -> Any:
    return translate(type_id, TOURNAMENT_TYPES)


def translate_replay_downloads(replay_downloads: int, short: bool = False) -> Any:
    return translate(
        replay_downloads,
        {
            0: "Disabled",
            1: "Enabled",
            2: "Post-Complete"
            if short
            else "Post-Complete (Downloads enabled after tournament is complete)",
        },
    )


def translate_replay_uploads(replay_uploads: int) -> Any:
    return translate(replay_uploads, {0: "Disabled", 1: "Optional", 2: "Mandatory"})


def translate_team_status(status: int) -> Any:
    return translate(status, {-1: "Banned", 0: "Unconfirmed", 1: "Confirmed"})


def translate_elimination(elimination: int) -> Any:
    return translate(elimination, {1: "Single", 2: "Double"})


def get_best_of(best_of: Any) -> int:
    """Normalize a best-of value to a positive odd number"""
    best_of = abs(int(best_of))
    if best_of < 1:
        return 1
    return best_of + (1 if best_of % 2 == 0 else 0)


def tournament_is_active(tournament: "Tournament") -> bool:
    return tournament.get("status") in ACTIVE_STATUSES


def tournament_in_group_rounds(tournament: "Tournament") -> bool:
    return tournament.get("status") == "Active-Groups"


def tournament_in_brackets(tournament: "Tournament") -> bool:
    return tournament.get("status") in ("Active", "Active-Brackets")


def tournament_can_start(tournament: "Tournament") -> bool | str:
    """True if the tournament can advance, otherwise the reason it can't"""
    if tournament.identity is None:
        return "Tournament does not have a tourney_id, save it first!"

    status = tournament.get("status")
    if status == "Complete":
        return "This tournament is already finished"
    if status in ("Active-Brackets", "Active"):
        return "This tournament is currently in its final bracket stage, there's nothing left to start"

    if tournament.changed:
        return "Tournament currently has unsaved changes, save them before starting the tournament"

    return True


def get_next_tournament_stage(tournament: "Tournament") -> str | None:
    if not tournament_is_active(tournament):
        if tournament.get("type_id") == TOURNEY_TYPE_CUP:
            return "Active-Groups"
        return "Active"

    status = tournament.get("status")
    if status == "Active-Groups":
        return "Active-Brackets"
    if status in ("Active", "Active-Brackets"):
        return "Complete"

    # Already complete
    return None


def get_empty_groups(tournament: "Tournament") -> dict[str, list]:
    """Empty team lists keyed by group label (A, B, ... Z, AA, AB, ...)"""
    groups: dict[str, list] = {}
    count = len(GROUP_LABELS)
    for x in range(tournament.get("group_count") or 0):
        if x >= count:
            label = GROUP_LABELS[x // count - 1] + GROUP_LABELS[x % count]
        else:
            label = GROUP_LABELS[x]
        groups[label] = []
    return groups


def validate_seeding_type(tournament: "Tournament", seeding: str) -> str | None:
    """Return the normalized seeding type, or None if it isn't allowed next"""
    seeding = seeding.lower()

    # Cups that haven't started go to group rounds next: random or manual only
    if tournament.get("type_id") == TOURNEY_TYPE_CUP and not tournament_is_active(
        tournament
    ):
        return seeding if seeding in ("random", "manual") else None

    return seeding if seeding in ("random", "manual", "balanced", "sports") else None
