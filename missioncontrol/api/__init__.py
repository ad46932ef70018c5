"""HTTP layer: aiohttp application, routes and middleware."""
