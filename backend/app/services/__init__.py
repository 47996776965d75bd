"""
Business logic services.

- cache: persistent response cache keyed by normalized query
- content_service: knowledge-base CRUD with embedding upkeep
- sentiment / emergency: keyword classifiers for patient messages
- media_analysis: client for the video understanding API
- stats_service: admin dashboard aggregates
- rag: retrieval, generation and the chat orchestrator
"""
