"""Infrastructure shared by every component: config, clock, HTTP, logging."""
