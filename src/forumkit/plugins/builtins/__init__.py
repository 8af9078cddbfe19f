"""Built-in plugins registered by ``Store.init_event_bus``."""
