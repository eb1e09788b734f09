"""AgroFund storage layer.

A single DuckDB file holds every persisted record as JSON under a
string key (users, passwords, projects, investments, session state).
"""
