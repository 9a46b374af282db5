"""External system integrations: call platform and chat subsystem."""
