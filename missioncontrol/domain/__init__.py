"""Dashboard domain services: event actions, weather, time and tasks."""
