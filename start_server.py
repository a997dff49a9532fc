#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Start the FastAPI server with error handling."""
import sys
import traceback

print("=" * 70)
print("Starting Vitrin Studio")
print("=" * 70)

# Step 1: Test imports
print("\n[1/2] Testing imports...")
try:
    from app.core.config import get_settings
    from app.main import app
    print(f"✓ App imported: {app.title} v{app.version}")
    print(f"✓ Routes registered: {len(app.routes)}")
except Exception as e:
    print(f"✗ Import failed: {e}")
    traceback.print_exc()
    sys.exit(1)

if not get_settings().gemini_api_key:
    print("⚠ GEMINI_API_KEY is not set; studio calls will fail until it is configured")

# Step 2: Start server
print("\n[2/2] Starting server...")
print("=" * 70)
print("Server starting at: http://127.0.0.1:8000")
print("API Documentation: http://127.0.0.1:8000/docs")
print("=" * 70)
print("\nPress Ctrl+C to stop the server\n")

try:
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000, log_level="info")
except KeyboardInterrupt:
    print("\n\nServer stopped by user")
