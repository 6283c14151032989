"""Optional LLM labels for discovered clusters."""

import json
import logging
import re
from typing import Protocol

from intent_engine.embeddings.bedrock_client import BedrockClient
from intent_engine.exceptions import LabelParseError
from intent_engine.types import TopCluster

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


class LabelGenerator(Protocol):
    """Protocol for text generation used to label clusters."""

    async def generate_labels(self, prompt: str) -> str:
        """
        Complete a labeling prompt.

        Args:
            prompt: Prompt built by :func:`build_label_prompt`.

        Returns:
            Free text expected to contain ``{"labels": {"<cluster id>": "<label>"}}``.
        """
        ...


class BedrockLabelGenerator:
    """Label generator backed by an Anthropic model on Bedrock."""

    def __init__(
        self,
        aws_region: str = "us-east-1",
        model_id: str = "anthropic.claude-3-haiku-20240307-v1:0",
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        bedrock_client: BedrockClient | None = None,
    ):
        """
        Initialize the generator.

        Args:
            aws_region: AWS region for Bedrock.
            model_id: Bedrock model ID or inference profile ARN.
            aws_access_key_id: AWS access key ID (optional, uses credentials chain if not provided).
            aws_secret_access_key: AWS secret access key (optional, uses credentials chain if not provided).
            bedrock_client: Preconfigured client, mainly for tests.
        """
        self.model_id = model_id
        self.bedrock_client = bedrock_client or BedrockClient(
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            aws_region=aws_region,
        )
        logger.info(f"Initialized cluster label generator with model: {model_id}")

    async def generate_labels(self, prompt: str) -> str:
        return await self.bedrock_client.complete_async(
            model_id=self.model_id,
            prompt=prompt,
            max_tokens=1000,
            agent_name="ClusterLabeler",
            temperature=0.3,
        )

    def __repr__(self) -> str:
        """String representation."""
        return f"BedrockLabelGenerator(model={self.model_id})"


def build_label_prompt(clusters: list[TopCluster]) -> str:
    """Prompt asking for a 3-6 word label per cluster, answered as JSON."""
    summaries = []
    for cluster in clusters:
        samples = "\n".join(f"- {s['text']}" for s in cluster["samples"])
        summaries.append(
            f"Cluster {cluster['cluster_id']} ({cluster['size']} tickets):\n"
            f"Keywords: {', '.join(cluster['keywords'])}\n"
            f"Samples:\n{samples}"
        )

    return (
        "You are an expert on customer support tickets for a pet registry.\n\n"
        "Give each cluster a short, descriptive label (3-6 words) in the language "
        "of the tickets.\n\n"
        + "\n\n".join(summaries)
        + '\n\nAnswer only with JSON: {"labels": {"<clusterId>": "<label>", ...}}'
    )


def parse_cluster_labels(text: str) -> dict[str, str]:
    """
    Extract the ``labels`` mapping from a model reply.

    Raises:
        LabelParseError: If the reply holds no JSON object with a labels mapping.
    """
    cleaned = _FENCE.sub("", text.strip())
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise LabelParseError(f"No JSON object in label response: {text[:200]!r}")

    try:
        payload = json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        raise LabelParseError(f"Malformed label response: {e}") from e

    labels = payload.get("labels") if isinstance(payload, dict) else None
    if not isinstance(labels, dict):
        raise LabelParseError("Label response has no 'labels' mapping")
    return {str(k): str(v).strip() for k, v in labels.items() if isinstance(v, str) and v.strip()}


def apply_generated_labels(clusters: list[TopCluster], labels: dict[str, str]) -> int:
    """
    Merge generated labels into fallback labels in place.

    ``NEW: a-b-c`` becomes ``NEW: <label>``; ``→ IntentId`` becomes
    ``→ IntentId (<label>)``.

    Returns:
        Number of clusters that received a label.
    """
    applied = 0
    for cluster in clusters:
        label = labels.get(str(cluster["cluster_id"]))
        if not label:
            continue
        if cluster["suggested_label"].startswith("NEW:"):
            cluster["suggested_label"] = f"NEW: {label}"
        elif cluster["suggested_label"].startswith("→"):
            cluster["suggested_label"] = f"{cluster['suggested_label']} ({label})"
        else:
            continue
        applied += 1
    return applied
