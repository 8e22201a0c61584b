"""Timer domain services: the state engine, persistence and scheduling."""
