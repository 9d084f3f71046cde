"""
Match settings: whether the app is active and the details of the next game.
"""
import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from datetime import date
from typing import Optional

from .errors import StoreError, ValidationError
from .policy import Role

logger = logging.getLogger(__name__)

SETTINGS_KEY = "match_settings"
HOME_TEAM = "1. FC Lokomotive Leipzig"


@dataclass(frozen=True)
class MatchSettings:
    app_active: bool = True
    season: str = "2025/26"
    guest_team: str = ""
    competition: str = "Regionalliga Nordost"
    game_date: Optional[str] = None
    game_time: Optional[str] = None

    def login_allowed(self, role):
        # While no game is on, only admins can get in
        return self.app_active or Role.parse(role) is Role.ADMIN

    def summary(self, home_team=HOME_TEAM):
        lines = []
        if self.season:
            lines.append(f"Saison: {self.season}")
        lines.append(f"Heim: {home_team}")
        if self.guest_team:
            lines.append(f"Gast: {self.guest_team}")
        if self.competition:
            lines.append(f"Wettbewerb: {self.competition}")
        if self.game_date:
            day = date.fromisoformat(self.game_date[:10]).strftime("%d.%m.%Y")
            if self.game_time:
                lines.append(f"Datum & Uhrzeit: {day} {self.game_time}")
            else:
                lines.append(f"Datum: {day}")
        return "\n".join(lines)

    def updated(self, **changes):
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValidationError(f"unknown settings: {', '.join(sorted(unknown))}")
        settings = replace(self, **changes)
        settings.validate()
        return settings

    def validate(self):
        if not isinstance(self.app_active, bool):
            raise ValidationError("app_active must be true or false")
        for name in ("season", "guest_team", "competition"):
            if not isinstance(getattr(self, name), str):
                raise ValidationError(f"{name} must be text")
        for name in ("game_date", "game_time"):
            if getattr(self, name) is not None and not isinstance(getattr(self, name), str):
                raise ValidationError(f"{name} must be text or null")
        if self.game_date:
            try:
                date.fromisoformat(self.game_date[:10])
            except ValueError:
                raise ValidationError(f"invalid game date '{self.game_date}'")
        if self.game_time:
            parts = self.game_time.split(":")
            if len(parts) < 2 or not all(p.isdigit() for p in parts[:2]) \
                    or int(parts[0]) > 23 or int(parts[1]) > 59:
                raise ValidationError(f"invalid game time '{self.game_time}'")

    def to_dict(self):
        return asdict(self)


def load_settings(store):
    try:
        raw = store.get_string(SETTINGS_KEY)
    except StoreError:
        raise
    except Exception as e:
        raise StoreError(f"cannot read '{SETTINGS_KEY}': {e}") from e
    if not raw:
        return MatchSettings()
    try:
        data = json.loads(raw)
        known = {f.name for f in fields(MatchSettings)}
        settings = MatchSettings(**{k: v for k, v in data.items() if k in known})
        settings.validate()
        return settings
    except (ValueError, TypeError, AttributeError, ValidationError) as e:
        logger.warning("Stored match settings are invalid, using defaults: %s", e)
        return MatchSettings()


def save_settings(store, settings):
    settings.validate()
    try:
        store.set_string(SETTINGS_KEY, json.dumps(settings.to_dict()))
    except StoreError:
        raise
    except Exception as e:
        raise StoreError(f"cannot write '{SETTINGS_KEY}': {e}") from e
    return settings
