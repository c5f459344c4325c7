# src/clustercost/utils/provider_id.py

import logging
import re
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ProviderIDParser = Callable[[str], str]

_AWS_INSTANCE_ID = re.compile(r"(?:^|/)(i-[0-9a-zA-Z]+)$")


def identity(provider_id: str) -> str:
    return provider_id


def parse_aws_provider_id(provider_id: str) -> str:
    """
    Extract the EC2 instance ID from a Kubernetes AWS provider ID.

    'aws:///us-east-2a/i-0fea4fd46592d050b' -> 'i-0fea4fd46592d050b'.
    Returns the input unchanged when no instance ID can be found.
    """
    match = _AWS_INSTANCE_ID.search(provider_id)
    if not match:
        logger.debug("Could not find an instance ID in AWS provider ID '%s'", provider_id)
        return provider_id
    return match.group(1)


def parse_gcp_provider_id(provider_id: str) -> str:
    """
    Extract the instance name from a GCE provider ID.

    'gce://project/us-central1-a/gke-pool-abc' -> 'gke-pool-abc'.
    """
    parts = provider_id.rstrip("/").split("/")
    return parts[-1] if parts else provider_id


def parse_azure_provider_id(provider_id: str) -> str:
    # Azure resource IDs are case-insensitive and get reported in mixed case.
    return provider_id.lower()


_PARSERS = {
    "aws": parse_aws_provider_id,
    "eks": parse_aws_provider_id,
    "gcp": parse_gcp_provider_id,
    "gke": parse_gcp_provider_id,
    "azure": parse_azure_provider_id,
    "aks": parse_azure_provider_id,
}


def get_provider_id_parser(cloud_provider: Optional[str]) -> ProviderIDParser:
    """
    Pick the provider-ID normalizer for a cloud provider name.

    Unknown or empty provider names fall back to the identity parser.
    """
    if not cloud_provider:
        return identity
    parser = _PARSERS.get(cloud_provider.lower())
    if parser is None:
        logger.debug("No provider ID parser for '%s'; using identity", cloud_provider)
        return identity
    return parser
