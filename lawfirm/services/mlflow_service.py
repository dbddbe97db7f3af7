"""
services/mlflow_service.py
--------------------------
Run tracking for AI calls in the "lawfirm-ai" MLflow experiment.

One run per model call, named after the task (document_analysis, key_terms,
risks, summary, intent, chat). Each run records the model and tenant as
params, latency and size as metrics, and the tenant/task as tags so runs
can be filtered per firm.

Nothing is tracked unless MLFLOW_TRACKING_URI is set; mlflow is only
imported in that case. A tracking failure is logged and swallowed so an
unreachable tracking server never fails an analysis or a chat reply.
"""

from typing import Any, Dict, Optional

from lawfirm.core.config import settings
from lawfirm.core.logging import get_logger

logger = get_logger(__name__)

EXPERIMENT_NAME = "lawfirm-ai"
CHARS_PER_TOKEN = 4


def _get_mlflow():
    if not settings.MLFLOW_TRACKING_URI:
        return None
    import mlflow
    return mlflow


def setup_mlflow() -> None:
    """Point mlflow at the tracking server and select (or create) the experiment."""
    mlflow = _get_mlflow()
    if mlflow is None:
        logger.info("AI call tracking disabled")
        return

    try:
        mlflow.set_tracking_uri(settings.MLFLOW_TRACKING_URI)
        if mlflow.get_experiment_by_name(EXPERIMENT_NAME) is None:
            mlflow.create_experiment(EXPERIMENT_NAME)
            logger.info("Tracking experiment created", experiment=EXPERIMENT_NAME)
        mlflow.set_experiment(EXPERIMENT_NAME)
        logger.info("AI call tracking enabled", uri=settings.MLFLOW_TRACKING_URI)
    except Exception as exc:
        logger.warning("AI call tracking setup failed", error=str(exc))


def run_fields(
    task: str,
    model: str,
    prompt: str,
    response: str,
    latency_ms: float,
    organization_id: str,
    mock: bool,
) -> Dict[str, Dict[str, Any]]:
    """Params, metrics and tags recorded for one call."""
    return {
        "params": {
            "task": task,
            "model": "mock" if mock else model,
            "organization_id": organization_id,
            "mock_mode": mock,
            "environment": settings.APP_ENV,
        },
        "metrics": {
            "latency_ms": latency_ms,
            "prompt_chars": len(prompt),
            "response_chars": len(response),
            "approx_tokens_in": len(prompt) / CHARS_PER_TOKEN,
            "approx_tokens_out": len(response) / CHARS_PER_TOKEN,
        },
        "tags": {"organization_id": organization_id, "task": task},
    }


def track_llm_call(
    task: str,
    model: str,
    prompt: str,
    response: str,
    latency_ms: float,
    organization_id: str = "unknown",
    mock: bool = True,
) -> Optional[str]:
    """Returns the run id, or None when tracking is off or failed."""
    mlflow = _get_mlflow()
    if mlflow is None:
        return None

    fields = run_fields(task, model, prompt, response, latency_ms, organization_id, mock)
    try:
        mlflow.set_experiment(EXPERIMENT_NAME)
        with mlflow.start_run(run_name=task) as run:
            mlflow.log_params(fields["params"])
            mlflow.log_metrics(fields["metrics"])
            mlflow.set_tags(fields["tags"])
            run_id = run.info.run_id
    except Exception as exc:
        logger.warning("AI call tracking failed", task=task, error=str(exc))
        return None

    logger.debug("AI call tracked", run_id=run_id, task=task)
    return run_id
