"""In-memory stand-in for the BinaryBeast API, used by demo mode and tests."""

import copy
import itertools
from typing import Any, Mapping

from ..utils.helpers import RESULT_SUCCESS
from .response import APIResponse

# kind: (id field, extraction key, id prefix, not found code)
RESOURCES: dict[str, tuple[str, str, str, int]] = {
    "tournament": ("tourney_id", "tourney_info", "xDEMO", 704),
    "team": ("tourney_team_id", "team_info", "", 706),
    "match": ("tourney_match_id", "match_info", "", 708),
}

SERVICES: dict[str, tuple[str, str]] = {
    "Tourney.TourneyCreate.Create": ("tournament", "create"),
    "Tourney.TourneyLoad.Info": ("tournament", "load"),
    "Tourney.TourneyUpdate.Settings": ("tournament", "update"),
    "Tourney.TourneyDelete.Delete": ("tournament", "delete"),
    "Tourney.TourneyLoad.Teams": ("tournament", "list_teams"),
    "Tourney.TourneyTeam.Insert": ("team", "create"),
    "Tourney.TourneyLoad.Team": ("team", "load"),
    "Tourney.TourneyTeam.Update": ("team", "update"),
    "Tourney.TourneyTeam.Delete": ("team", "delete"),
    "Tourney.TourneyTeam.ReportWin": ("match", "create"),
    "Tourney.TourneyLoad.Match": ("match", "load"),
    "Tourney.TourneyMatch.Update": ("match", "update"),
    "Tourney.TourneyMatch.Delete": ("match", "delete"),
}

# Values the server fills in itself
SERVER_DEFAULTS: dict[str, dict[str, Any]] = {
    "tournament": {"status": "Building"},
    "team": {"status": 0},
    "match": {},
}

MOCK_TOURNAMENT_DATA: dict[str, Any] = {
    "tourney_id": "xDEMO1",
    "title": "Demo Tournament",
    "description": "Weekly demo cup",
    "public": 1,
    "game_code": "SC2",
    "type_id": 1,
    "elimination": 2,
    "max_teams": 8,
    "team_mode": 1,
    "group_count": 2,
    "best_of": 3,
    "status": "Building",
}

MOCK_TEAMS: list[dict[str, Any]] = [
    {"tourney_team_id": 1, "display_name": "Alice", "status": 1, "country_code": "NOR"},
    {"tourney_team_id": 2, "display_name": "Bob", "status": 1, "country_code": "SWE"},
    {"tourney_team_id": 3, "display_name": "Carol", "status": 1, "country_code": "USA"},
    {"tourney_team_id": 4, "display_name": "Dave", "status": 0, "country_code": "GBR"},
    {"tourney_team_id": 5, "display_name": "Eve", "status": 1, "country_code": "DEU"},
]


class MockTransport:
    """Implements the tournament/team/match services against dictionaries"""

    def __init__(self, seed: bool = False):
        self.store: dict[str, dict[str, dict[str, Any]]] = {kind: {} for kind in RESOURCES}
        # (service, args) of every call, in order
        self.calls: list[tuple[str, dict[str, Any]]] = []
        # Services that should fail with the given result code
        self.failures: dict[str, int] = {}
        self._ids = itertools.count(1)

        if seed:
            self.store["tournament"]["xDEMO1"] = copy.deepcopy(MOCK_TOURNAMENT_DATA)
            for team in MOCK_TEAMS:
                self.store["team"][str(team["tourney_team_id"])] = {
                    **copy.deepcopy(team),
                    "tourney_id": "xDEMO1",
                }
            self._ids = itertools.count(len(MOCK_TEAMS) + 1)

    def calls_to(self, service: str) -> list[dict[str, Any]]:
        return [args for called, args in self.calls if called == service]

    def invoke(self, service: str, args: Mapping[str, Any]) -> APIResponse:
        args = dict(args)
        self.calls.append((service, args))

        if service in self.failures:
            return APIResponse(result=self.failures[service])
        if service not in SERVICES:
            return APIResponse(result=404)

        kind, action = SERVICES[service]
        return getattr(self, f"_{action}")(kind, args)

    def _create(self, kind: str, args: dict[str, Any]) -> APIResponse:
        id_field, _, prefix, _ = RESOURCES[kind]

        if kind != "tournament":
            parent = str(args.get("tourney_id"))
            if parent not in self.store["tournament"]:
                return APIResponse(result=704)

        new_id = next(self._ids)
        identity = f"{prefix}{new_id}" if prefix else new_id
        self.store[kind][str(identity)] = {
            **SERVER_DEFAULTS[kind],
            **args,
            id_field: identity,
        }
        return APIResponse(result=RESULT_SUCCESS, **{id_field: identity})

    def _find(self, kind: str, args: dict[str, Any]) -> dict[str, Any] | None:
        id_field = RESOURCES[kind][0]
        return self.store[kind].get(str(args.get(id_field)))

    def _load(self, kind: str, args: dict[str, Any]) -> APIResponse:
        _, info_key, _, missing = RESOURCES[kind]
        record = self._find(kind, args)
        if record is None:
            return APIResponse(result=missing)
        return APIResponse(result=RESULT_SUCCESS, **{info_key: copy.deepcopy(record)})

    def _update(self, kind: str, args: dict[str, Any]) -> APIResponse:
        id_field, _, _, missing = RESOURCES[kind]
        record = self._find(kind, args)
        if record is None:
            return APIResponse(result=missing)
        record.update({k: v for k, v in args.items() if k != id_field})
        return APIResponse(result=RESULT_SUCCESS)

    def _delete(self, kind: str, args: dict[str, Any]) -> APIResponse:
        id_field, _, _, missing = RESOURCES[kind]
        if self.store[kind].pop(str(args.get(id_field)), None) is None:
            return APIResponse(result=missing)
        return APIResponse(result=RESULT_SUCCESS)

    def _list_teams(self, kind: str, args: dict[str, Any]) -> APIResponse:
        if self._find(kind, args) is None:
            return APIResponse(result=RESOURCES[kind][3])
        tourney_id = str(args.get("tourney_id"))
        teams = [
            copy.deepcopy(team)
            for team in self.store["team"].values()
            if str(team.get("tourney_id")) == tourney_id
        ]
        return APIResponse(result=RESULT_SUCCESS, teams=teams)
