"""Client module - Backend API client, upload orchestration, and CLI."""
