"""FastAPI application exposing graph evaluation over HTTP."""
