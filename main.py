#!/usr/bin/env python3
"""
rulesheet

A FastAPI application that turns board game rulebook PDFs into concise
rules summaries using an LLM, and serves them as searchable pages.

To start the server:
    python main.py
"""

import sys
from pathlib import Path

# add the project root to python path so we can import src.rulesheet
sys.path.insert(0, str(Path(__file__).parent))

# start the fastapi server when this file is run
if __name__ == "__main__":
    import uvicorn
    # run the api app on port 8000 with auto-reload for development
    uvicorn.run("src.rulesheet.api:app", host="0.0.0.0", port=8000, reload=True)
