"""Framework adapters receiving OTLP/HTTP requests."""
