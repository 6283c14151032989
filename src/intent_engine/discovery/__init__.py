"""Offline discovery of new intents in historical support documents."""

from intent_engine.discovery.kmeans import KMeansResult, kmeans_cluster
from intent_engine.discovery.labeling import BedrockLabelGenerator, LabelGenerator
from intent_engine.discovery.linkage import IntentDiscovery, linkage_clustering
from intent_engine.discovery.staging import StagingClusterer

__all__ = [
    "StagingClusterer",
    "IntentDiscovery",
    "KMeansResult",
    "kmeans_cluster",
    "linkage_clustering",
    "LabelGenerator",
    "BedrockLabelGenerator",
]
