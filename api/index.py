import sys
import os

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from backend.qrlinks.main import app  # noqa: E402

# Vercel Serverless Python expects 'app' for ASGI frameworks like FastAPI
