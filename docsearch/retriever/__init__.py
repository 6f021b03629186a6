"""
Retriever - Semantic Retrieval and Extractive Summarization

Ranks document chunks against questions and builds cluster-based summaries
under a token budget.

Key Components:
- SimilarityRanker: Cosine ranking with deterministic tie-breaking
- RerankingAdapter: Optional reordering through a reranking service
- ClusterSummarizer: Lead chunk + k-means representatives
- ContextBudgeter: Line-accumulation and whole-text token budgets
- DocumentTools: One ad-hoc document with a cached embedding
- DocumentSearchTools: Documents of a storage collection

Pipeline:
1. Convert, split and embed the source
2. Embed the question
3. Rank, cut off, rerank
4. Format blocks and apply the token budget
"""

from .ranker import SimilarityRanker, cosine_similarity
from .reranker import RerankingAdapter
from .summarizer import ClusterSummarizer
from .budgeter import ContextBudgeter
from .pipeline import DocumentPipeline
from .document_tools import DocumentTools
from .search_tools import DocumentSearchTools

__all__ = [
    "SimilarityRanker",
    "cosine_similarity",
    "RerankingAdapter",
    "ClusterSummarizer",
    "ContextBudgeter",
    "DocumentPipeline",
    "DocumentTools",
    "DocumentSearchTools",
]
