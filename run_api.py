#!/usr/bin/env python
"""
Wrapper to run the API service with proper path setup
"""
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn

from grocery_planner.core.config import APP_HOST, APP_PORT

uvicorn.run("grocery_planner.api.service:app", host=APP_HOST, port=APP_PORT)
