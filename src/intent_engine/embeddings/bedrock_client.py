"""Bedrock client for AWS services."""

import asyncio
import json
import logging
from typing import Any

import boto3
from botocore.config import Config as BotoConfig

logger = logging.getLogger(__name__)

_ACCESS_HINT = (
    "This error typically means:\n"
    "  1. Model access not enabled in your AWS account\n"
    "  2. Model requires an inference profile (newer models)\n"
    "  3. On-demand access not available for this model\n"
    "Enable the model under AWS Bedrock Console → Model access, or use an inference "
    "profile ARN: arn:aws:bedrock:REGION::inference-profile/MODEL_ID"
)

_SSL_HINT = (
    "SSL Certificate Error detected. This is often caused by missing CA certificates.\n"
    "Ensure the ca-certificates package is installed, or set REQUESTS_CA_BUNDLE."
)


def _log_invoke_error(agent_name: str, model_id: str, error: Exception) -> None:
    """Log a Bedrock failure with a remediation hint when one applies."""
    error_str_lower = str(error).lower()
    logger.error(f"[{agent_name}] Error invoking Bedrock model {model_id}: {error}")
    if "certificate" in error_str_lower or "ssl" in error_str_lower:
        logger.error(_SSL_HINT)
    elif "inference profile" in error_str_lower or "validationexception" in error_str_lower:
        logger.error(_ACCESS_HINT)


class BedrockClient:
    """Client for interacting with AWS Bedrock."""

    def __init__(
        self,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_region: str = "us-east-1",
    ):
        """
        Initialize the Bedrock client.

        Args:
            aws_access_key_id: AWS access key ID (optional, uses credentials chain if not provided).
            aws_secret_access_key: AWS secret access key (optional, uses credentials chain if not provided).
            aws_region: AWS region for Bedrock.
        """
        boto_config = BotoConfig(
            region_name=aws_region,
            retries={"max_attempts": 3, "mode": "adaptive"},
            tcp_keepalive=True,
            max_pool_connections=50,
        )

        client_kwargs: dict[str, Any] = {
            "service_name": "bedrock-runtime",
            "region_name": aws_region,
            "config": boto_config,
        }
        if aws_access_key_id and aws_secret_access_key:
            client_kwargs["aws_access_key_id"] = aws_access_key_id
            client_kwargs["aws_secret_access_key"] = aws_secret_access_key

        try:
            self.client = boto3.client(**client_kwargs)
        except Exception as e:
            logger.error(f"Failed to initialize Bedrock client: {e}")
            raise
        logger.info(f"Initialized Bedrock client in region {aws_region}")

    def invoke_model(
        self,
        model_id: str,
        body: str | bytes,
        agent_name: str = "Unknown",
    ) -> dict[str, Any]:
        """
        Invoke a Bedrock model and decode its JSON response body.

        Args:
            model_id: The Bedrock model ID to invoke.
            body: Request body (JSON string or bytes).
            agent_name: Name for logging purposes.

        Returns:
            Parsed response body.
        """
        body_bytes = body.encode("utf-8") if isinstance(body, str) else body
        logger.debug(f"[{agent_name}] Invoking {model_id} ({len(body_bytes)} bytes)")

        try:
            response = self.client.invoke_model(
                modelId=model_id,
                body=body_bytes,
                contentType="application/json",
            )
        except Exception as e:
            _log_invoke_error(agent_name, model_id, e)
            raise

        raw_body = response["body"]
        if hasattr(raw_body, "read"):
            raw_body = raw_body.read()
        return json.loads(raw_body)

    async def invoke_model_async(
        self,
        model_id: str,
        body: str | bytes,
        agent_name: str = "Unknown",
    ) -> dict[str, Any]:
        """Run :meth:`invoke_model` in a worker thread."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, lambda: self.invoke_model(model_id, body, agent_name=agent_name)
        )

    async def complete_async(
        self,
        model_id: str,
        prompt: str,
        max_tokens: int = 2048,
        agent_name: str = "Unknown",
        temperature: float = 0.3,
    ) -> str:
        """
        Send a single-turn prompt through the Anthropic Messages API.

        Args:
            model_id: The Bedrock model ID or inference profile ARN to invoke.
            prompt: The prompt text to send to the model.
            max_tokens: Maximum tokens for the response.
            agent_name: Name for logging purposes.
            temperature: Sampling temperature (0.0 to 1.0).

        Returns:
            The text completion from the model.
        """
        body = json.dumps(
            {
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": max_tokens,
                "temperature": temperature,
                "anthropic_version": "bedrock-2023-05-31",
            }
        )
        logger.info(f"[{agent_name}] Prompt length: {len(prompt)} characters")

        response_body = await self.invoke_model_async(model_id, body, agent_name=agent_name)
        content = response_body.get("content") or [{}]
        completion = content[0].get("text", "") if isinstance(content, list) else ""

        logger.info(f"[{agent_name}] Response length: {len(completion)} characters")
        return completion.strip()
