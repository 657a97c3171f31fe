"""
Development server entry point.

Example:
    MONGO_URI=mongodb://localhost:27017/demo python -m graphgate
"""

from graphgate.app import serve

if __name__ == "__main__":
    serve()
