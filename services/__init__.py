"""Application services shared by the route blueprints."""
