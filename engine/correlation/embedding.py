"""
Embedding capability consumed by the semantic correlation strategy. The engine depends on an injected embedder; the default one hashes message tokens into a fixed-width vector so it needs no fitted vocabulary.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Callable, Sequence

import numpy as np
from sklearn.feature_extraction.text import HashingVectorizer

from config import settings

Embedder = Callable[[Sequence[str]], np.ndarray]


class HashingEmbedder:
    def __init__(self, n_features: int | None = None) -> None:
        if n_features is None:
            n_features = settings.embedding_features
        self._vectorizer = HashingVectorizer(
            n_features=n_features,
            alternate_sign=False,
            norm="l2",
            lowercase=True,
            token_pattern=r"(?u)\b[a-zA-Z][a-zA-Z0-9]+\b",
        )

    def __call__(self, texts: Sequence[str]) -> np.ndarray:
        return self._vectorizer.transform(list(texts)).toarray()


def cosine(a: np.ndarray, b: np.ndarray) -> float:
    va = np.asarray(a, dtype=float).ravel()
    vb = np.asarray(b, dtype=float).ravel()
    if va.shape != vb.shape:
        return 0.0
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 0.0
    return float(np.dot(va, vb) / denom)
