"""boto3 session and per-region client cache."""

from typing import Any, Dict, Optional

import boto3
from botocore.config import Config

from log_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)


class AWSClientManager:
    """Owns one boto3 session and hands out cached clients per region.

    A run touches every configured region, so clients are keyed by
    ``service:region`` and share one botocore configuration.
    """

    def __init__(
        self,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        max_pool_connections: int = 50,
        max_attempts: int = 3
    ):
        """Initialize AWS client manager.

        Args:
            profile: Named profile from the shared credentials file
            region: Session region, used when a client is requested without one
            max_pool_connections: HTTP connections per client; should cover
                the number of reconciler workers
            max_attempts: botocore-level attempts per call (throttling is
                additionally retried by the reconciler)
        """
        self.profile = profile
        self.region = region
        self._session: Optional[boto3.Session] = None
        self._clients: Dict[str, Any] = {}
        self._boto_config = Config(
            max_pool_connections=max_pool_connections,
            retries={'mode': 'standard', 'max_attempts': max_attempts},
            connect_timeout=10,
            read_timeout=60,
        )

    @property
    def session(self) -> boto3.Session:
        """The boto3 session, created on first use."""
        if self._session is None:
            self._session = boto3.Session(profile_name=self.profile, region_name=self.region)
            logger.info(
                f"Using AWS profile {self.profile or 'default'} "
                f"(session region {self._session.region_name})"
            )
        return self._session

    def get_client(self, service_name: str, region: Optional[str] = None):
        """Cached client for ``service_name`` in ``region`` (session region by default)."""
        region = region or self.region or self.session.region_name
        key = f"{service_name}:{region}"
        client = self._clients.get(key)
        if client is None:
            client = self.session.client(service_name, region_name=region, config=self._boto_config)
            self._clients[key] = client
            logger.debug(f"Created {service_name} client for {region}")
        return client

    def logs_client(self, region: str):
        """CloudWatch Logs client for ``region``."""
        return self.get_client('logs', region)

    def clear_cache(self) -> None:
        """Drop cached clients and the session, e.g. after credentials change."""
        self._clients.clear()
        self._session = None
