"""Centralized AWS client management with session handling.

Clients are cached per service and region. A manager is bound to one
credential set; ``with_credentials`` derives a manager for another
account from assumed-role credentials.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError, NoCredentialsError, ProfileNotFound


@dataclass(frozen=True)
class AssumeRoleCredentials:
    """Ephemeral credential set returned by STS AssumeRole."""

    access_key_id: str
    secret_access_key: str
    session_token: str
    expiration: Optional[datetime] = None

    def to_session_kwargs(self) -> Dict[str, Any]:
        return {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key,
            "aws_session_token": self.session_token,
        }

    def __repr__(self) -> str:
        return f"AssumeRoleCredentials(access_key_id={self.access_key_id!r}, expiration={self.expiration!r})"


class AWSClientManager:
    """Centralized AWS client management with session handling."""

    def __init__(
        self,
        region_name: Optional[str] = None,
        profile_name: Optional[str] = None,
        credentials: Optional[AssumeRoleCredentials] = None,
        solution_id: Optional[str] = None,
    ) -> None:
        """Initialize AWS client manager.

        No provider call is made until a client is used.

        Args:
            region_name: Default region for clients
            profile_name: Optional AWS profile name for ambient credentials
            credentials: Optional explicit credentials, overriding the profile
            solution_id: Optional solution tag appended to the user agent
        """
        self._session: Optional[boto3.Session] = None
        self._clients: Dict[str, object] = {}
        self._region_name = region_name
        self._profile_name = profile_name
        self._credentials = credentials
        self._solution_id = solution_id

    def _get_session(self) -> boto3.Session:
        """Get or create boto3 session.

        Returns:
            Configured boto3 session
        """
        if self._session is None:
            if self._credentials is not None:
                self._session = boto3.Session(**self._credentials.to_session_kwargs())
            elif self._profile_name:
                self._session = boto3.Session(profile_name=self._profile_name)
            else:
                self._session = boto3.Session()
        return self._session

    def _client_config(self) -> Optional[Config]:
        if not self._solution_id:
            return None
        return Config(user_agent_extra=self._solution_id)

    def get_client(self, service_name: str, region_name: Optional[str] = None):
        """Get AWS service client for specified region.

        Args:
            service_name: AWS service name (e.g., 'controltower', 'iam')
            region_name: AWS region name, defaults to the manager's region

        Returns:
            Configured boto3 client for the service and region
        """
        region = region_name or self.get_current_region()
        client_key = f"{service_name}_{region}"

        if client_key not in self._clients:
            session = self._get_session()
            self._clients[client_key] = session.client(
                service_name, region_name=region, config=self._client_config()
            )

        return self._clients[client_key]

    def get_current_region(self) -> str:
        """Get the region clients default to.

        Returns:
            AWS region name
        """
        if self._region_name:
            return self._region_name
        return self._get_session().region_name or "us-east-1"

    def validate_credentials(self) -> str:
        """Validate AWS credentials are available and working.

        Returns:
            Account id of the caller

        Raises:
            NoCredentialsError: When AWS credentials are not available or expired
            ProfileNotFound: When specified profile doesn't exist
        """
        try:
            response = self.get_client("sts").get_caller_identity()
        except ProfileNotFound:
            raise ProfileNotFound(profile=self._profile_name)
        except ClientError as e:
            if e.response["Error"]["Code"] in ("InvalidUserID.NotFound", "ExpiredToken"):
                raise NoCredentialsError()
            raise
        return response["Account"]

    def with_credentials(
        self, credentials: Optional[AssumeRoleCredentials], region_name: Optional[str] = None
    ) -> "AWSClientManager":
        """Derive a manager acting with other credentials.

        Args:
            credentials: Assumed-role credentials, or None to keep the ambient identity
            region_name: Optional region override

        Returns:
            New manager, or this manager when nothing changes
        """
        if credentials is None and (region_name is None or region_name == self._region_name):
            return self
        return AWSClientManager(
            region_name=region_name or self._region_name,
            profile_name=None if credentials else self._profile_name,
            credentials=credentials or self._credentials,
            solution_id=self._solution_id,
        )

    def with_solution_id(self, solution_id: Optional[str]) -> "AWSClientManager":
        """Derive a manager tagging its calls with another solution id.

        Returns:
            New manager, or this manager when the tag is unchanged or empty
        """
        if not solution_id or solution_id == self._solution_id:
            return self
        return AWSClientManager(
            region_name=self._region_name,
            profile_name=self._profile_name,
            credentials=self._credentials,
            solution_id=solution_id,
        )

    def clear_cache(self) -> None:
        """Clear cached clients to force recreation."""
        self._clients.clear()
