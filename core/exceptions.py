# File: src/core/exceptions.py
"""Custom exceptions for the feed engine"""

class FeedTriageError(Exception):
    """Base exception for feed triage errors"""
    pass

class ConfigurationError(FeedTriageError):
    """Configuration-related errors"""
    pass

class FetchError(FeedTriageError):
    """Article store query failed"""
    pass

class UpdateError(FeedTriageError):
    """Article store update failed"""
    pass

class PersistenceError(FeedTriageError):
    """Preference read/write errors"""
    pass

class ValidationError(FeedTriageError):
    """Data validation errors"""
    pass

class ArticleNotFoundError(ValidationError):
    """Action requested on an article the session has not loaded"""

    def __init__(self, article_id):
        super().__init__(f"Article {article_id} is not loaded in this session")
        self.article_id = article_id
