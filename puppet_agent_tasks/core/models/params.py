"""
Task parameters — what a caller may pass to the ``install`` task.

Parameters arrive as JSON (stdin or ``PT_*`` environment variables) or from
CLI options, so booleans and lists are accepted in their string forms too.
Orchestrator metaparameters (``_task``, ``_installdir``...) are ignored,
except ``_noop`` which maps to a dry run.
"""

from __future__ import annotations

import shlex
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from puppet_agent_tasks.core.errors import InvalidParameter

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off", ""}

# Per-family package host overrides, same names as in CatalogSettings
SOURCE_PARAMS = ("yum_source", "apt_source", "mac_source", "windows_source", "solaris_source")


class InstallParams(BaseModel):
    """Validated parameters of the install task."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    collection: str
    version: str | None = None
    stop_service: bool = False
    retry: int | None = Field(default=None, ge=1)
    install_options: list[str] = Field(default_factory=list)
    noop: bool = Field(default=False, alias="_noop")

    yum_source: str | None = None
    apt_source: str | None = None
    mac_source: str | None = None
    windows_source: str | None = None
    solaris_source: str | None = None

    @field_validator("version", mode="before")
    @classmethod
    def _blank_version(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return str(v).strip()

    @field_validator("stop_service", "noop", mode="before")
    @classmethod
    def _string_bool(cls, v: Any) -> Any:
        if isinstance(v, str):
            lowered = v.strip().lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
        return v

    @field_validator("install_options", mode="before")
    @classmethod
    def _split_options(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, str):
            return shlex.split(v)
        return v

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> InstallParams:
        """Validate raw parameters.

        Raises:
            InvalidParameter: naming every offending parameter.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(p) for p in err['loc']) or 'parameters'}: {err['msg']}"
                for err in e.errors()
            ]
            raise InvalidParameter(
                f"Invalid install parameters: {'; '.join(problems)}",
                details={"errors": problems},
            ) from e

    def settings_overrides(self) -> dict[str, Any]:
        """Nested settings overrides implied by these parameters."""
        overrides: dict[str, Any] = {}
        catalog = {
            param: getattr(self, param)
            for param in SOURCE_PARAMS
            if getattr(self, param)
        }
        if catalog:
            overrides["catalog"] = catalog
        if self.retry is not None:
            overrides["retry"] = {"max_attempts": self.retry}
        return overrides
