"""Configuration via environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

from cmvcwatch.errors import ConfigurationError


class Settings(BaseSettings):
    """cmvcwatch configuration loaded from environment variables.

    Instances are passed explicitly to the query builder and the detector;
    there is no process-wide settings object.
    """

    # CMVC family, syntax: family@host@port
    family: str = ""
    # Release names separated by comma
    releases: str = ""
    # User login used to connect to CMVC
    become: str = ""

    # Absolute path + name of the script performing the checkout
    checkout_script: str = ""
    wipe_workspace: bool = True

    # Overrides the default TrackView where clause when set
    track_view_where_clause: str = ""

    # CMVC client
    cmvc_path: str = "c:/cmvc/exe"
    report_command: str = "Report"

    model_config = {
        "env_prefix": "CMVCWATCH_",
        "env_file": ".env",
        "extra": "ignore",
    }

    def release_list(self) -> list[str]:
        """Configured releases, trimmed, in configuration order."""
        return [r.strip() for r in self.releases.split(",") if r.strip()]

    def validate_for_cycle(self, *, checkout: bool = False) -> None:
        """Raise ``ConfigurationError`` before any remote call is made."""
        if not self.family.strip():
            raise ConfigurationError("CMVC family is mandatory", phase="configure")
        if not self.release_list():
            raise ConfigurationError("CMVC releases are mandatory", phase="configure")
        if not checkout:
            return
        if not self.checkout_script.strip():
            raise ConfigurationError("checkout script is mandatory", phase="configure")
        if not Path(self.checkout_script).exists():
            raise ConfigurationError(
                f"checkout script does not exist: {self.checkout_script}",
                phase="configure",
            )

    def build_env(self) -> dict[str, str]:
        """Variables injected into every Report and checkout invocation."""
        env = {
            "CMVC_CLIENT_CMC": self.cmvc_path,
            "CMVC_FAMILY": self.family,
            "CMVC_RELEASES": self.releases,
        }
        if self.become:
            env["CMVC_BECOME"] = self.become
        return env
