"""
Shared similarity helpers.
"""
import numpy as np


def compute_cosine_similarities(query_emb: np.ndarray, candidate_embs: np.ndarray) -> np.ndarray:
    """
    Computes cosine similarities between a query and candidate embeddings.

    Rows with zero magnitude, or a zero query, score 0.0 instead of NaN.
    """
    query = np.asarray(query_emb, dtype=np.float64)
    candidates = np.asarray(candidate_embs, dtype=np.float64)
    if candidates.size == 0:
        return np.zeros(0, dtype=np.float64)

    denominators = np.linalg.norm(candidates, axis=1) * np.linalg.norm(query)
    dots = candidates @ query
    return np.divide(dots, denominators, out=np.zeros_like(dots), where=denominators > 0)
