"""Short-lived registry credentials from an assumed AWS role."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from typing import Any, Callable

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .errors import CredentialResolutionError, ExternalToolError, InputValidationError
from .tools import ToolRunner
from .types import PipelineSettings, RegistryCredentials

logger = logging.getLogger(__name__)

SessionFactory = Callable[..., Any]

_ECR_HOST = re.compile(r"^\d{12}\.dkr\.ecr(?:-fips)?\.(?P<region>[a-z0-9-]+)\.amazonaws\.com(?:\.cn)?$")


def role_arn_for(account_id: str, role_name: str) -> str:
    return f"arn:aws:iam::{account_id}:role/{role_name}"


def registry_host_of(registry: str) -> str:
    return registry.split("://", 1)[-1].split("/", 1)[0].lower()


def ecr_region_for(registry: str | None) -> str | None:
    """Return the region encoded in an ECR registry host, or ``None`` for other registries."""
    if not registry:
        return None
    match = _ECR_HOST.match(registry_host_of(registry))
    return match.group("region") if match else None


class CredentialResolver:
    """Assume the push role for an account and log docker into its ECR registry."""

    def __init__(
        self,
        settings: PipelineSettings,
        runner: ToolRunner,
        *,
        session_factory: SessionFactory | None = None,
    ) -> None:
        self.settings = settings
        self.runner = runner
        self._session_factory = session_factory or boto3.session.Session

    def resolve(self, account_id: str, *, registry: str | None = None) -> RegistryCredentials:
        """Log in to the account's registry.

        An ECR ``registry`` decides the region and must match the endpoint ECR
        returns; any other registry leaves ``settings.region`` in charge.
        """
        account = (account_id or "").strip()
        if not account:
            raise InputValidationError("account id must be a non-empty string")

        region = ecr_region_for(registry) or self.settings.region
        role_arn = role_arn_for(account, self.settings.role_name)
        logger.info("assuming role %s in %s", role_arn, region)
        try:
            sts = self._session_factory(region_name=region).client("sts")
            assumed = sts.assume_role(
                RoleArn=role_arn,
                RoleSessionName=self.settings.session_name,
                DurationSeconds=int(self.settings.session_duration),
            )
            raw = assumed["Credentials"]
            access_key_id = str(raw["AccessKeyId"])
            secret_access_key = str(raw["SecretAccessKey"])
            session_token = str(raw["SessionToken"])
            self.runner.add_secret(secret_access_key)
            self.runner.add_secret(session_token)

            ecr = self._session_factory(
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                aws_session_token=session_token,
                region_name=region,
            ).client("ecr")
            auth = ecr.get_authorization_token(registryIds=[account])
        except (ClientError, BotoCoreError) as exc:
            raise CredentialResolutionError(f"unable to assume {role_arn}: {exc}") from exc
        except (KeyError, TypeError) as exc:
            raise CredentialResolutionError(f"unexpected STS response while assuming {role_arn}") from exc

        username, password, registry_host = _decode_authorization(auth)
        self.runner.add_secret(password)
        if ecr_region_for(registry) and registry_host_of(registry) != registry_host.lower():
            raise CredentialResolutionError(
                f"registry {registry_host_of(registry)} does not match the ECR endpoint {registry_host} "
                f"returned for account {account}"
            )

        try:
            self.runner.run(
                ["docker", "login", "--username", username, "--password-stdin", registry_host],
                input_text=password,
            )
        except ExternalToolError as exc:
            raise CredentialResolutionError(f"docker login to {registry_host} failed: {exc}") from exc

        logger.info("logged in to %s", registry_host)
        return RegistryCredentials(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=session_token,
            expiration=raw.get("Expiration"),
            registry_host=registry_host,
            username=username,
            password=password,
        )


def _decode_authorization(payload: Any) -> tuple[str, str, str]:
    try:
        data = payload["authorizationData"][0]
        token = str(data["authorizationToken"])
        endpoint = str(data["proxyEndpoint"])
    except (KeyError, IndexError, TypeError) as exc:
        raise CredentialResolutionError("ECR returned no authorization data") from exc
    try:
        decoded = base64.b64decode(token, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise CredentialResolutionError("ECR authorization token is not valid base64") from exc
    username, sep, password = decoded.partition(":")
    if not sep or not username or not password:
        raise CredentialResolutionError("ECR authorization token is not a username:password pair")
    host = endpoint.split("://", 1)[-1].rstrip("/")
    return username, password, host
