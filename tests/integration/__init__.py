"""
Integration tests for the Classification Proxy.

Exercise the FastAPI app end to end with TestClient. The completion
provider is replaced by an httpx.MockTransport, so no external services
are required.
"""
