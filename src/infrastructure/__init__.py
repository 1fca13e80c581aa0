"""
infrastructure - Concrete implementations of the domain ports.

Vendor-specific code lives here: LangChain chat models (Ollama by default),
HuggingFace sentence embeddings and the aiosqlite note store. Only the
composition root and the adapters import from this package.
"""
