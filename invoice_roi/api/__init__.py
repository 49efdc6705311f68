"""HTTP API (Flask): simulate, scenario CRUD, report generation."""
