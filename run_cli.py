"""
Run the MindKeep CLI.

Usage:
    python run_cli.py [COMMAND] [OPTIONS]

Commands:
    init    Create the note store schema
    add     Save a note (suggests a category when none is given)
    notes   List stored notes
    ask     One-shot question against your notes
    chat    Interactive session (supports /history, /clear, /usage)

Examples:
    python run_cli.py add "Netflix" "password: S3cr3t!"
    python run_cli.py ask "what's my netflix password?"
    python run_cli.py chat --stream

Environment variables are the same as for run_api.py.
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

from adapters.cli.main import app

if __name__ == "__main__":
    app()
