"""Environment-driven configuration (see env.py)."""
