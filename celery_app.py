import logging

import requests
from celery import Celery
from dotenv import load_dotenv

from resumerank.core.config import settings

load_dotenv()

logger = logging.getLogger(__name__)

celery = Celery(
    "resumerank_tasks",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_BROKER_URL
)

ANALYZE_TIMEOUT_SECONDS = 120
RETRY_COUNTDOWN_SECONDS = 30


@celery.task(bind=True, max_retries=3)
def analyze_candidate_task(self, candidate_id):
    """Ask the API to score a freshly uploaded resume."""
    logger.info(f"[Celery] Starting resume analysis for candidate {candidate_id}")
    response = requests.post(
        f"{settings.APP_URL.rstrip('/')}/analysis/analyze",
        json={"candidateId": candidate_id},
        headers={"Authorization": f"Bearer {settings.SERVICE_TOKEN}"},
        timeout=ANALYZE_TIMEOUT_SECONDS
    )

    if response.status_code == 503:
        # AI provider overloaded; the API sends Retry-After
        countdown = int(response.headers.get("Retry-After", RETRY_COUNTDOWN_SECONDS))
        logger.warning(f"[Celery] AI service busy for candidate {candidate_id}, retrying in {countdown}s")
        raise self.retry(countdown=countdown)

    if response.status_code >= 400:
        logger.error(f"[Celery] Analysis failed for candidate {candidate_id}: "
                     f"{response.status_code} {response.text}")
        return {"success": False, "status": response.status_code}

    result = response.json()
    logger.info(f"[Celery] Candidate {candidate_id} analyzed, score {result.get('score')}")
    return result
