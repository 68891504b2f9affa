"""Tournament, team and match models."""

from ..utils import helpers
from .errors import ErrorKind
from .remote_model import RemoteModel, ResourceConfig, derived

TYPE_TOURNAMENT = 0
TYPE_TEAM = 1
TYPE_MATCH = 2


class Team(RemoteModel):
    """A team (or player) taking part in a tournament"""

    config = ResourceConfig(
        id_field="tourney_team_id",
        service_load="Tourney.TourneyLoad.Team",
        service_create="Tourney.TourneyTeam.Insert",
        service_update="Tourney.TourneyTeam.Update",
        service_delete="Tourney.TourneyTeam.Delete",
        extraction_key="team_info",
        defaults={"display_name": "", "status": 0, "country_code": None},
        read_only=frozenset({"tourney_id"}),
        object_type=TYPE_TEAM,
        cache_ttl=10,
    )

    @derived
    def status_text(self):
        return helpers.translate_team_status(self.get("status"))


class Match(RemoteModel):
    """A match between two teams"""

    config = ResourceConfig(
        id_field="tourney_match_id",
        service_load="Tourney.TourneyLoad.Match",
        service_create="Tourney.TourneyTeam.ReportWin",
        service_update="Tourney.TourneyMatch.Update",
        service_delete="Tourney.TourneyMatch.Delete",
        extraction_key="match_info",
        defaults={"score": 0, "o_score": 0, "best_of": 1},
        read_only=frozenset({"tourney_id", "bracket"}),
        object_type=TYPE_MATCH,
    )

    @derived
    def bracket_label(self):
        return helpers.get_bracket_label(self.get("bracket"))


class Tournament(RemoteModel):
    """A BinaryBeast tournament"""

    config = ResourceConfig(
        id_field="tourney_id",
        service_load="Tourney.TourneyLoad.Info",
        service_create="Tourney.TourneyCreate.Create",
        service_update="Tourney.TourneyUpdate.Settings",
        service_delete="Tourney.TourneyDelete.Delete",
        service_list="Tourney.TourneyLoad.Teams",
        extraction_key="tourney_info",
        defaults={
            "title": "New Tournament",
            "description": "",
            "public": 1,
            "game_code": "",
            "type_id": helpers.TOURNEY_TYPE_BRACKETS,
            "elimination": 1,
            "max_teams": 16,
            "team_mode": 1,
            "group_count": 0,
            "best_of": 1,
        },
        read_only=frozenset({"status", "url"}),
        object_type=TYPE_TOURNAMENT,
        cache_ttl=10,
    )

    @derived
    def teams(self) -> list[Team]:
        """Teams in this tournament, empty for new tournaments or on failure"""
        if self.identity is None:
            return []

        response = self._call(
            self.config.service_list, {self.config.id_field: self.identity}, cacheable=True
        )
        if not response.success:
            self._fail_remote(response)
            return []
        return self.wrap_list(response.get("teams") or [], Team)

    @derived
    def type_name(self):
        return helpers.translate_tournament_type_id(self.get("type_id"))

    def get_confirmed_team_ids(self) -> list:
        return [team.identity for team in self.teams() if team.get("status") == 1]

    def add_team(self, display_name: str, **values) -> Team | bool:
        """Create a team in this tournament, returns the saved Team or False"""
        if self.identity is None:
            self._fail_missing_identity("add a team")
            return False

        team = Team(self.transport, cache=self.cache)
        team.set("display_name", display_name)
        for name, value in values.items():
            team.set(name, value)

        if team.save(extra_args={self.config.id_field: self.identity}) is False:
            self.last_error = team.error()
            return False

        # Team list changed
        self._clear_cached(self.identity)
        return team

    def _fail_missing_identity(self, action: str) -> None:
        self._fail(
            ErrorKind.MISSING_IDENTITY,
            f"Tournament has no {self.config.id_field}, save it before trying to {action}",
        )
