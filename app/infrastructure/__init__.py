"""Infrastructure packages for the notification delivery pipeline.

Centralized infrastructure components:
- configuration: Settings management (Settings and per-concern sub-settings)
- logging: Structured logging setup and delivery context binding
- operations: Operation results and error classification
- persistence: SQLAlchemy engine, sessions and schema management
- notifications: Record store, queue scheduler, transports and facade
- services: Cached providers (get_settings, get_db_engine, get_session_factory)
"""
