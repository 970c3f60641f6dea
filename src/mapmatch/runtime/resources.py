# mapmatch/runtime/resources.py
import os
import pickle
from functools import lru_cache

import networkx as nx


@lru_cache(maxsize=8)
def load_graph_from_path(file: str, fmt: str) -> nx.DiGraph | None:
    """Load a preprocessed road graph; None when the file is missing."""
    if not os.path.exists(file):
        return None
    if fmt == "pickle":
        with open(file, "rb") as f:
            g = pickle.load(f)
        if not isinstance(g, nx.DiGraph):
            raise TypeError(f"{file} holds {type(g).__name__}, expected a networkx DiGraph")
        return g
    raise ValueError(f"Unsupported graph fmt {fmt!r}")
