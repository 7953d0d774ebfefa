"""Core I/O adapters: configuration, data providers and orchestration."""
