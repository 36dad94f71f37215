"""
HealthGuard Services - domain logic and shared infrastructure.

- knowledge_base: keyword responder over the fixed health topic table
- request_queue: paced, retrying queue for outbound LLM calls
- chat_orchestrator: chat reply decision and provenance
- triage: symptom intake, rule verdicts and remote assessment
- user_auth / database: accounts on PostgreSQL or in memory
- container: wiring for the app lifespan
"""
