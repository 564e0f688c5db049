"""Chess rule engine with an HTTP session adapter."""
