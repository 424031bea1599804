"""Pydantic models for run configuration."""

import re
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Regions enabled by default in every commercial account
DEFAULT_REGIONS = [
    "us-east-1",
    "us-east-2",
    "us-west-1",
    "us-west-2",
    "ap-south-1",
    "ap-northeast-3",
    "ap-northeast-2",
    "ap-southeast-1",
    "ap-southeast-2",
    "ap-northeast-1",
    "ca-central-1",
    "eu-central-1",
    "eu-west-1",
    "eu-west-2",
    "eu-west-3",
    "eu-north-1",
    "sa-east-1",
]

REGION_PATTERN = re.compile(r"^[a-z]{2}(-gov|-iso[a-z]?)?-[a-z]+-\d+$")

# Environment variable -> field name
ENV_FIELDS = {
    "FILTER": "filter",
    "DESIRED_STATE": "desired_state",
    "REGIONS": "regions",
    "MAX_WORKERS": "max_workers",
    "MAX_PAGE_RETRIES": "max_page_retries",
    "PAGE_SIZE": "page_size",
    "INCLUDE_LINKED_ACCOUNTS": "include_linked_accounts",
    "WEBHOOK_URL": "webhook_url",
    "NOTIFY_ON": "notify_on",
}


class RunConfig(BaseModel):
    """Configuration of one run, validated once before any work starts."""

    model_config = ConfigDict(extra="forbid")

    filter: Optional[str] = Field(
        None, description="Filter expression, e.g. 'retention == infinite'"
    )
    desired_state: Optional[str] = Field(
        None, description="Desired-state token, e.g. '3months', 'infinite', 'delete'"
    )
    regions: List[str] = Field(default_factory=lambda: list(DEFAULT_REGIONS), min_length=1)
    max_workers: int = Field(8, ge=1, le=64)
    max_page_retries: int = Field(3, ge=0, le=10)
    page_size: int = Field(50, ge=1, le=50)
    include_linked_accounts: bool = False
    webhook_url: Optional[str] = None
    notify_on: str = Field("always", pattern="^(always|failure)$")

    @field_validator("regions", mode="before")
    @classmethod
    def split_regions(cls, v: Any) -> Any:
        """Accept a comma separated string as well as a list."""
        if isinstance(v, str):
            return [part for part in (p.strip() for p in v.split(",")) if part]
        return v

    @field_validator("regions")
    @classmethod
    def validate_regions(cls, v: List[str]) -> List[str]:
        """Validate region names and drop duplicates, keeping order."""
        seen: List[str] = []
        for region in v:
            region = region.strip()
            if not REGION_PATTERN.match(region):
                raise ValueError(f"Invalid region name: {region!r}")
            if region not in seen:
                seen.append(region)
        return seen

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.startswith(("https://", "http://")):
            raise ValueError("webhook_url must be an http(s) URL")
        return v

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> "RunConfig":
        """Build configuration from environment variables.

        Unset or empty variables keep their defaults, except ``FILTER``,
        which is passed through as given so that an empty filter is
        reported instead of silently matching everything.

        Raises:
            ConfigValidationError: if any value is invalid
        """
        from log_lifecycle.config.parser import build_config

        data: Dict[str, Any] = {}
        for variable, name in ENV_FIELDS.items():
            value = environ.get(variable)
            if value is None or (value == "" and name != "filter"):
                continue
            data[name] = value
        return build_config(data, source="environment")

    def override(self, **values: Any) -> "RunConfig":
        """Copy with the given non-None values replaced and revalidated.

        Raises:
            ConfigValidationError: if a replaced value is invalid
        """
        from log_lifecycle.config.parser import build_config

        data = self.model_dump()
        data.update({k: v for k, v in values.items() if v is not None})
        return build_config(data, source="overrides")
