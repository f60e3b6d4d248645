"""AWS Secrets Manager store."""
import json
import logging
from typing import Any, Dict, List, Tuple

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from .config_loader import BackendConfig
from .errors import (
    SecretListingError,
    SecretReadError,
    SecretWriteError,
    StoreConnectionError,
)
from .models import SecretRecord
from .store import SecretStore

logger = logging.getLogger(__name__)

ROLE_SESSION_NAME = "secret-sync"


def _error_code(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


class AWSSecretStore(SecretStore):
    """Secret store backed by AWS Secrets Manager. Data is kept as a JSON SecretString."""

    system = "AWS Secrets Manager"

    def __init__(self, client):
        self.client = client

    @classmethod
    def from_config(cls, config: BackendConfig) -> "AWSSecretStore":
        """
        Create a session for the configured region, assuming a role if one is set.

        Raises:
            StoreConnectionError: If credentials cannot be obtained
        """
        region = config.settings["region"]
        role_arn = config.settings.get("role_arn")

        try:
            session = boto3.session.Session(region_name=region)
            if role_arn:
                credentials = session.client("sts").assume_role(
                    RoleArn=role_arn, RoleSessionName=ROLE_SESSION_NAME
                )["Credentials"]
                session = boto3.session.Session(
                    aws_access_key_id=credentials["AccessKeyId"],
                    aws_secret_access_key=credentials["SecretAccessKey"],
                    aws_session_token=credentials["SessionToken"],
                    region_name=region,
                )
            if session.get_credentials() is None:
                raise StoreConnectionError(
                    f"No AWS credentials found for region {region}", system=cls.system
                )
            client = session.client("secretsmanager")
        except (BotoCoreError, ClientError) as e:
            raise StoreConnectionError(
                f"Failed to create AWS session (region: {region}, role: {role_arn or 'none'}): {e}",
                system=cls.system,
            ) from e

        logger.info(f"{cls.system} session created successfully (region: {region})")
        return cls(client)

    def list_all_secrets(self) -> List[SecretRecord]:
        records = []
        try:
            paginator = self.client.get_paginator("list_secrets")
            for page in paginator.paginate():
                for entry in page.get("SecretList", []):
                    # [{"Key": "k", "Value": "v"}] -> {"k": "v"}
                    tags = {tag["Key"]: tag.get("Value", "") for tag in entry.get("Tags", [])}
                    records.append(SecretRecord(name=entry["Name"], ref=entry.get("ARN"), tags=tags))
        except (BotoCoreError, ClientError) as e:
            raise SecretListingError(f"Failed to list secrets: {e}", system=self.system) from e
        return records

    def fetch_secret_data(self, record: SecretRecord) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        try:
            response = self.client.get_secret_value(SecretId=record.ref or record.name)
        except ClientError as e:
            if _error_code(e) == "ResourceNotFoundException":
                # Secret exists but has no current version
                return {}, dict(record.tags)
            raise SecretReadError(
                f"Failed to get secret value: {e}", system=self.system, path=record.name
            ) from e
        except BotoCoreError as e:
            raise SecretReadError(
                f"Failed to get secret value: {e}", system=self.system, path=record.name
            ) from e

        secret_string = response.get("SecretString")
        if not secret_string:
            return {}, dict(record.tags)

        try:
            data = json.loads(secret_string)
        except json.JSONDecodeError as e:
            raise SecretReadError(
                f"Secret value is not a JSON object: {e}", system=self.system, path=record.name
            ) from e
        if not isinstance(data, dict):
            raise SecretReadError(
                "Secret value is not a JSON object", system=self.system, path=record.name
            )
        return data, dict(record.tags)

    def write_secret_data(self, name: str, data: Dict[str, Any]) -> None:
        secret_string = json.dumps(data)
        try:
            try:
                self.client.put_secret_value(SecretId=name, SecretString=secret_string)
            except ClientError as e:
                if _error_code(e) != "ResourceNotFoundException":
                    raise
                self.client.create_secret(Name=name, SecretString=secret_string)
        except (BotoCoreError, ClientError) as e:
            raise SecretWriteError(
                f"Unable to update secret data: {e}", system=self.system, path=name
            ) from e
        logger.info(f"Successfully put data to {self.system} secret {name}")

    def write_secret_tags(self, name: str, tags: Dict[str, Any]) -> None:
        new_tags = [{"Key": str(k), "Value": str(v)} for k, v in tags.items()]
        try:
            try:
                current = self.client.describe_secret(SecretId=name).get("Tags", [])
            except ClientError as e:
                if _error_code(e) != "ResourceNotFoundException":
                    raise
                self.client.create_secret(Name=name, Tags=new_tags)
            else:
                removed = [tag["Key"] for tag in current if tag["Key"] not in tags]
                if removed:
                    self.client.untag_resource(SecretId=name, TagKeys=removed)
                if new_tags:
                    self.client.tag_resource(SecretId=name, Tags=new_tags)
        except (BotoCoreError, ClientError) as e:
            raise SecretWriteError(
                f"Unable to update secret tags: {e}", system=self.system, path=name
            ) from e
        logger.info(f"Successfully put tags to {self.system} secret {name}")

    def delete_secret(self, name: str) -> None:
        try:
            self.client.delete_secret(SecretId=name)
        except (BotoCoreError, ClientError) as e:
            raise SecretWriteError(
                f"Unable to delete secret: {e}", system=self.system, path=name
            ) from e
