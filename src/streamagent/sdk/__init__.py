"""streamagent SDK — settings and sessions for embedding the agent."""

from streamagent.sdk.errors import SettingsValidationError
from streamagent.sdk.loader import SettingsLoader
from streamagent.sdk.models import AgentSettings, GatekeeperSettings, TelemetrySettings
from streamagent.sdk.session import AgentSession

__all__ = [
    "AgentSession",
    "AgentSettings",
    "GatekeeperSettings",
    "SettingsLoader",
    "SettingsValidationError",
    "TelemetrySettings",
]
