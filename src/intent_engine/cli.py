"""CLI for the intent engine."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import typer

from intent_engine.config import settings

# Initialize logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create Typer app
app = typer.Typer(
    name="intent-engine",
    help="Intent resolution and discovery CLI",
    add_completion=False,
)

INTENTS_FILE = typer.Option(
    None, "--intents-file", help="JSON file with canonical intents (defaults to Redis)"
)
DOCUMENTS_FILE = typer.Option(
    None, "--documents-file", help="JSON file with staging documents (defaults to Redis)"
)
REDIS_URL = typer.Option(None, "--redis-url", "-r", help="Redis URL")


def _open_store(intents_file: Path | None, documents_file: Path | None, redis_url: str | None):
    """JSON files when given, otherwise the configured Redis catalog."""
    from intent_engine.store import JsonFileStore, RedisStore

    if intents_file is not None or documents_file is not None:
        return JsonFileStore(intents_path=intents_file, documents_path=documents_file)
    return RedisStore(
        redis_url=redis_url or settings.redis_url,
        intent_key_prefix=settings.intent_key_prefix,
        document_key_prefix=settings.document_key_prefix,
    )


async def _close(store: Any) -> None:
    close = getattr(store, "close", None)
    if close is not None:
        await close()


def _emit(payload: Any, output: Path | None) -> None:
    text = json.dumps(payload, ensure_ascii=False, indent=2)
    if output is None:
        print(text)
        return
    output.write_text(text, encoding="utf-8")
    print(f"✓ Report written to {output}")


async def _build_resolver(store: Any):
    from intent_engine.embeddings import create_embedder
    from intent_engine.fuzzy import FuzzyCandidateCache, FuzzyLabelMatcher
    from intent_engine.index import SemanticIndex
    from intent_engine.resolver import IntentResolver

    embedder = create_embedder()
    index = SemanticIndex(catalog=store, embedder=embedder, expected_dim=embedder.dim)
    await index.refresh()
    matcher = FuzzyLabelMatcher(FuzzyCandidateCache(store))
    return index, IntentResolver(index, fuzzy_matcher=matcher)


@app.command()
def match(
    query: str = typer.Option(..., "--query", "-q", help="Message to resolve"),
    intents_file: Path | None = INTENTS_FILE,
    redis_url: str | None = REDIS_URL,
) -> None:
    """
    Resolve one message to a canonical intent.

    Example:
        intent-engine match --query "hvordan endrer jeg eierskap" --intents-file intents.json
    """

    async def _run() -> None:
        store = _open_store(intents_file, None, redis_url)
        try:
            _, resolver = await _build_resolver(store)
            result = await resolver.resolve(query)
        finally:
            await _close(store)

        if result["intent_id"] is not None:
            print(f"✓ Resolved ({result['source']}):")
            print(f"  Intent: {result['intent_id']}")
            print(f"  Score: {result['score']:.3f}")
            if result["match_detail"]:
                print(f"  Detail: {result['match_detail']}")
        else:
            print("✗ No intent resolved")
            print(f"  Best candidate: {result['best_intent_id']} ({result['semantic_score']:.3f})")
        if result["normalization"] and result["normalization"]["changed"]:
            print(f"  Normalized: {result['normalization']['normalized']}")

    try:
        asyncio.run(_run())
    except Exception as e:
        logger.error(f"Error resolving message: {e}")
        sys.exit(1)


@app.command()
def top(
    query: str = typer.Option(..., "--query", "-q", help="Message to score"),
    n: int = typer.Option(settings.top_n, "--n", "-n", help="Number of candidates"),
    intents_file: Path | None = INTENTS_FILE,
    redis_url: str | None = REDIS_URL,
) -> None:
    """List the top-N semantic candidates for a message."""

    async def _run() -> None:
        from intent_engine.normalization import normalize_input

        store = _open_store(intents_file, None, redis_url)
        try:
            index, _ = await _build_resolver(store)
            matches = await index.find_top_n_semantic_matches(normalize_input(query)["normalized"], n)
        finally:
            await _close(store)

        if not matches:
            print("✗ Index is empty")
            return
        for i, m in enumerate(matches, 1):
            print(f"  {i}. {m['intent_id']} [{m['category']}]: {m['similarity']:.3f}")

    try:
        asyncio.run(_run())
    except Exception as e:
        logger.error(f"Error scoring message: {e}")
        sys.exit(1)


@app.command()
def discover(
    intents_file: Path | None = INTENTS_FILE,
    documents_file: Path | None = DOCUMENTS_FILE,
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the report here"),
    k: int = typer.Option(settings.cluster_k, "--k", "-k", help="Requested cluster count"),
    labels: bool = typer.Option(False, "--labels/--no-labels", help="Generate labels via Bedrock"),
    redis_url: str | None = REDIS_URL,
) -> None:
    """
    Cluster the staging corpus and compare it with the catalog.

    Example:
        intent-engine discover --documents-file docs.json --intents-file intents.json -o report.json
    """

    async def _run() -> None:
        from intent_engine.discovery import BedrockLabelGenerator, StagingClusterer
        from intent_engine.embeddings import create_embedder

        label_generator = None
        if labels:
            label_generator = BedrockLabelGenerator(
                aws_region=settings.aws_region,
                model_id=settings.label_model,
                aws_access_key_id=settings.aws_access_key_id,
                aws_secret_access_key=settings.aws_secret_access_key,
            )

        store = _open_store(intents_file, documents_file, redis_url)
        try:
            clusterer = StagingClusterer(
                source=store,
                catalog=store,
                embedder=create_embedder(),
                label_generator=label_generator,
                k=k,
            )
            report = await clusterer.run()
        finally:
            await _close(store)
        _emit(report, output)

    try:
        asyncio.run(_run())
    except Exception as e:
        logger.error(f"Error running discovery: {e}")
        sys.exit(1)


@app.command("discover-linkage")
def discover_linkage(
    intents_file: Path | None = INTENTS_FILE,
    documents_file: Path | None = DOCUMENTS_FILE,
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the result here"),
    redis_url: str | None = REDIS_URL,
) -> None:
    """Propose new intents from classified documents with linkage clustering."""

    async def _run() -> None:
        from intent_engine.discovery import IntentDiscovery
        from intent_engine.embeddings import create_embedder

        store = _open_store(intents_file, documents_file, redis_url)
        try:
            result = await IntentDiscovery(
                source=store, catalog=store, embedder=create_embedder()
            ).run()
        finally:
            await _close(store)
        _emit(result, output)

    try:
        asyncio.run(_run())
    except Exception as e:
        logger.error(f"Error running linkage discovery: {e}")
        sys.exit(1)


@app.command("embed-catalog")
def embed_catalog(
    intents: Path = typer.Option(..., "--intents", "-i", help="JSON file with canonical intents"),
    redis_url: str | None = REDIS_URL,
) -> None:
    """
    Embed every intent in a JSON file and store it in Redis.

    Example:
        intent-engine embed-catalog --intents intents.json
    """

    async def _run() -> None:
        from intent_engine.discovery.batching import batch_embed
        from intent_engine.embeddings import create_embedder
        from intent_engine.intent_text import build_intent_embedding_text
        from intent_engine.store import JsonFileStore, RedisStore

        records = JsonFileStore(intents_path=intents).load_intents()
        vectors = await batch_embed(
            create_embedder(),
            [build_intent_embedding_text(intent) for intent in records],
            batch_size=settings.embed_batch_size,
        )

        store = RedisStore(
            redis_url=redis_url or settings.redis_url,
            intent_key_prefix=settings.intent_key_prefix,
            document_key_prefix=settings.document_key_prefix,
        )
        try:
            for intent, vector in zip(records, vectors):
                intent["embedding"] = vector.tolist()
                await store.upsert_intent(intent)
        finally:
            await store.close()
        print(f"✓ Embedded {len(records)} intents")

    try:
        asyncio.run(_run())
    except Exception as e:
        logger.error(f"Error embedding catalog: {e}")
        sys.exit(1)


@app.command()
def info() -> None:
    """Display configuration information."""
    print(f"Redis URL: {settings.redis_url}")
    print(f"Pilot mode: {settings.pilot_mode}")
    print(f"Input normalization: {settings.enable_input_normalization}")
    print(f"Embed provider: {settings.embed_provider}")
    print(f"Embed model: {settings.embed_model_name if settings.embed_provider == 'st_local' else settings.titan_embed_model}")
    print(f"Semantic threshold: {settings.semantic_threshold}")
    print(f"Fuzzy band: ({settings.fuzzy_low_bound}, {settings.semantic_threshold})")
    print(f"Cluster k: {settings.cluster_k}")


if __name__ == "__main__":
    app()
