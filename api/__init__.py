"""REST adapters exposing the typing service over HTTP."""
