"""FastAPI dev node for the confidential AMM."""
