from app.models.instagram import ActiveScrapeJob, InstagramAgentLead, InstagramPost

__all__ = [
    "ActiveScrapeJob",
    "InstagramAgentLead",
    "InstagramPost",
]
