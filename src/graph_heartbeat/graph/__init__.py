"""Microsoft Graph gateway client and response models."""
from .client import GraphClient, GRAPH_BASE_URL
from .models import DriveQuota, PutResult, QUOTA_PLACEHOLDER

__all__ = ["GraphClient", "GRAPH_BASE_URL", "DriveQuota", "PutResult", "QUOTA_PLACEHOLDER"]
