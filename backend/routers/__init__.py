"""
HealthGuard API Routers

- chat: health assistant replies (/api/chat)
- triage: symptom intake and urgency verdicts (/api/triage)
- auth: account register / login / me (/api/auth)
"""
