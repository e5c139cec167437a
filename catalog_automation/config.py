"""Configuration for catalog automation."""

import os

# GCP Project
PROJECT_ID = os.getenv("GCP_PROJECT_ID", "tools-catalog")
FIRESTORE_EMULATOR_HOST = os.getenv("FIRESTORE_EMULATOR_HOST")

# Firestore collections
TOOLS_COLLECTION = os.getenv("TOOLS_COLLECTION", "tools")
NEWS_COLLECTION = os.getenv("NEWS_COLLECTION", "ai_news")
REPORTS_COLLECTION = "automation_reports"
SETTINGS_COLLECTION = "automation_settings"
LOCKS_COLLECTION = "automation_locks"
CONTENT_CACHE_COLLECTION = "content_cache"
BROADCAST_COLLECTION = "broadcast_channels"

# Orchestrator
RUN_TIMEOUT_SECS = int(os.getenv("RUN_TIMEOUT_SECS", "1800"))  # 30 min
AUTO_REFRESH_INTERVAL_SECS = int(os.getenv("AUTO_REFRESH_INTERVAL_SECS", "300"))  # 5 min
STALE_REPORT_HOURS = 24
MAX_WORKERS = int(os.getenv("AUTOMATION_MAX_WORKERS", "4"))

# Store-level lease lock (multi-replica deployments)
LEASE_LOCK_ENABLED = os.getenv("LEASE_LOCK_ENABLED", "false").lower() == "true"
LEASE_DURATION_SECS = 300  # 5 minutes
HEARTBEAT_INTERVAL_SECS = int(os.getenv("HEARTBEAT_INTERVAL_SECS", "60"))

# Persistence retries
PERSIST_MAX_ATTEMPTS = 3
PERSIST_BACKOFF_SECS = 0.5

# Discovery
DISCOVERY_TOOLS_URL = os.getenv("DISCOVERY_TOOLS_URL")
DISCOVERY_NEWS_URL = os.getenv("DISCOVERY_NEWS_URL")
DISCOVERY_API_KEY = os.getenv("DISCOVERY_API_KEY")
MAX_TOOLS_PER_RUN = int(os.getenv("MAX_TOOLS_PER_RUN", "50"))

# Cache invalidation
REVALIDATE_URL = os.getenv("REVALIDATE_URL")
REVALIDATE_SECRET = os.getenv("REVALIDATE_SECRET")

# Broadcast
BROADCAST_CHANNEL = os.getenv("BROADCAST_CHANNEL", "automation-updates")

# Alerting
ALERT_WEBHOOK_URL = os.getenv("ALERT_WEBHOOK_URL")
SMTP_HOST = os.getenv("SMTP_HOST")
SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASS = os.getenv("SMTP_PASS")
SMTP_FROM = os.getenv("SMTP_FROM", "noreply@example.com")
ADMIN_EMAILS = os.getenv("ADMIN_EMAILS", "")

# Quality pass
AUTO_FIX_DATA_QUALITY = os.getenv("AUTO_FIX_DATA_QUALITY", "false").lower() == "true"

# API
API_PORT = int(os.getenv("PORT", "8080"))
