"""Business logic services.

Services contain ranking, rate limiting and scoring logic and are called by routes.
Ranking functions are pure; storage and network collaborators are passed explicitly.
"""
