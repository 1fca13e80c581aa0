"""
Run the MindKeep REST API.

Usage:
    python run_api.py

Environment variables (all optional):
    LLM_PROVIDER        "ollama", "openai" or "groq" (default: ollama)
    LLM_MODEL_OLLAMA    Model name when LLM_PROVIDER=ollama (default: llama3.2)
    LLM_MODEL_OPENAI    Model name when LLM_PROVIDER=openai
    LLM_MODEL_GROQ      Model name when LLM_PROVIDER=groq
    OPENAI_API_KEY      Required when LLM_PROVIDER=openai
    GROQ_API_KEY        Required when LLM_PROVIDER=groq
    EMBEDDING_MODEL     sentence-transformers model for note embeddings
    DB_PATH             SQLite note store path (default: mindkeep.db)
    OLLAMA_BASE_URL     Ollama server URL (default: http://localhost:11434/)
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "adapters.rest.app:app",
        host="127.0.0.1",
        port=8000,
        reload=True,
    )
