"""FastAPI application serving the review app webhook receiver."""

from typing import Any, Dict

from fastapi import Depends, FastAPI

from review_app_action.config import Settings
from review_app_action.dependencies import settings_dependency
from review_app_action.webhook import router as webhook_router

app = FastAPI(title="Heroku Review App Action")

app.include_router(webhook_router, tags=["webhook"])


@app.get("/health")
def health(settings: Settings = Depends(settings_dependency)) -> Dict[str, Any]:
    """Report whether deliveries can be reconciled; never echoes a credential."""

    missing = settings.missing_action_credentials()
    if not settings.github_webhook_secret:
        missing.append("GITHUB_WEBHOOK_SECRET")

    return {
        "status": "ready" if not missing else "unconfigured",
        "missing_configuration": missing,
        "github_api_base_url": settings.normalized_github_api_base_url,
        "heroku_api_base_url": settings.normalized_heroku_api_base_url,
        "collaborator_permissions": settings.collaborator_permissions,
        "review_app_label": settings.review_app_label_name,
    }
