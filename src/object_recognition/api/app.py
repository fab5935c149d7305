"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status

from object_recognition.api.schemas import (
    ApiStatusPayload,
    MethodOrderPayload,
    MethodTogglePayload,
    PriorityPayload,
    QuotaPayload,
    ThresholdPayload,
    TierAttemptPayload,
    UserAiConfigListPayload,
    UserAiConfigPayload,
    state_to_payload,
)
from object_recognition.app_logging import configure_logging
from object_recognition.containers import AppContainer
from object_recognition.domain.priority import RecognitionMethod
from object_recognition.errors import BusyError, ExhaustedError, ValidationError
from object_recognition.services.user_ai import UserAiService

_MAX_IMAGE_BYTES = 10 * 1024 * 1024


def _container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_admin(
    request: Request, x_admin_token: str | None = Header(default=None)
) -> None:
    """Ensure requests include a valid admin token."""
    admin_token = _container(request).settings.admin_token
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


def _require_user_ai_config(service: UserAiService, config_id: str) -> None:
    if not any(config.id == config_id for config in service.list_configs().configs):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown user AI config: {config_id}",
        )


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level.upper())
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/recognize")
    async def recognize(request: Request) -> dict[str, object]:
        """Recognize the object in the raw image request body."""
        image = await request.body()
        if not image:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Empty image body"
            )
        if len(image) > _MAX_IMAGE_BYTES:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail="Image too large",
            )
        orchestrator = _container(request).orchestrator
        try:
            result = await orchestrator.recognize(image)
        except BusyError as exc:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT, detail=str(exc)
            ) from exc
        except ExhaustedError as exc:
            logger.info("Recognition exhausted: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={
                    "reason": str(exc),
                    "attempts": [
                        TierAttemptPayload.from_attempt(attempt).model_dump(
                            mode="json"
                        )
                        for attempt in exc.attempts
                    ],
                },
            ) from exc
        return {"result": result.model_dump(mode="json")}

    @app.get("/recognition/state")
    async def recognition_state(request: Request) -> dict[str, object]:
        """Return the latest recognition state."""
        orchestrator = _container(request).orchestrator
        return state_to_payload(orchestrator.get_recognition_state().value)

    @app.post("/recognition/reset")
    async def reset_recognition(request: Request) -> dict[str, object]:
        """Return the state machine to idle."""
        orchestrator = _container(request).orchestrator
        orchestrator.reset_state()
        return state_to_payload(orchestrator.get_recognition_state().value)

    @app.get("/recognition/threshold")
    async def confidence_threshold(request: Request) -> dict[str, float]:
        """Return the active local classifier confidence threshold."""
        orchestrator = _container(request).orchestrator
        return {"confidence_threshold": orchestrator.get_confidence_threshold()}

    @app.put("/recognition/threshold", dependencies=[Depends(require_admin)])
    async def set_confidence_threshold(
        payload: ThresholdPayload, request: Request
    ) -> dict[str, float]:
        """Change the local classifier confidence threshold."""
        orchestrator = _container(request).orchestrator
        orchestrator.set_confidence_threshold(payload.confidence_threshold)
        return {"confidence_threshold": orchestrator.get_confidence_threshold()}

    @app.post("/recognition/cache/clear", dependencies=[Depends(require_admin)])
    async def clear_result_cache(request: Request) -> dict[str, str]:
        """Drop every cached recognition result."""
        _container(request).orchestrator.clear_cache()
        return {"status": "cleared"}

    @app.get("/priority")
    async def get_priority(request: Request) -> PriorityPayload:
        """Return the effective priority config."""
        config = _container(request).priority_manager.get_config()
        return PriorityPayload.from_config(config)

    @app.put("/priority", dependencies=[Depends(require_admin)])
    async def save_priority(
        payload: PriorityPayload, request: Request
    ) -> PriorityPayload:
        """Replace the priority config."""
        manager = _container(request).priority_manager
        try:
            manager.save_config(payload.to_config())
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
            ) from exc
        return PriorityPayload.from_config(manager.get_config())

    @app.post("/priority/reset", dependencies=[Depends(require_admin)])
    async def reset_priority(request: Request) -> PriorityPayload:
        """Restore the default priority order."""
        manager = _container(request).priority_manager
        manager.reset_to_default()
        return PriorityPayload.from_config(manager.get_config())

    @app.put("/priority/methods/{method}", dependencies=[Depends(require_admin)])
    async def toggle_method(
        method: RecognitionMethod, payload: MethodTogglePayload, request: Request
    ) -> PriorityPayload:
        """Enable or disable one recognition method."""
        manager = _container(request).priority_manager
        manager.set_method_enabled(method, payload.enabled)
        return PriorityPayload.from_config(manager.get_config())

    @app.put("/priority/order", dependencies=[Depends(require_admin)])
    async def reorder_methods(
        payload: MethodOrderPayload, request: Request
    ) -> PriorityPayload:
        """Change the method order, keeping enabled flags."""
        manager = _container(request).priority_manager
        try:
            manager.reorder(payload.methods)
        except ValidationError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
            ) from exc
        return PriorityPayload.from_config(manager.get_config())

    @app.get("/quotas")
    async def quotas(request: Request) -> dict[str, object]:
        """Return quota snapshots for every provider."""
        tracker = _container(request).quota_tracker
        return {
            "quotas": [
                QuotaPayload.from_state(quota).model_dump(mode="json")
                for quota in await tracker.get_all_quota_status()
            ]
        }

    @app.get("/providers/status")
    async def providers_status(request: Request) -> dict[str, object]:
        """Return provider availability for display."""
        selector = _container(request).provider_selector
        return {
            "providers": [
                ApiStatusPayload.from_status(api_status).model_dump(mode="json")
                for api_status in await selector.get_api_status()
            ]
        }

    @app.get("/user-ai/configs", dependencies=[Depends(require_admin)])
    async def list_user_ai_configs(request: Request) -> UserAiConfigListPayload:
        """Return saved user AI configs with masked keys."""
        service = _container(request).user_ai_service
        return UserAiConfigListPayload.from_list(service.list_configs())

    @app.post(
        "/user-ai/configs",
        dependencies=[Depends(require_admin)],
        status_code=status.HTTP_201_CREATED,
    )
    async def add_user_ai_config(
        payload: UserAiConfigPayload, request: Request
    ) -> UserAiConfigListPayload:
        """Save a new user AI config; the first one becomes active."""
        service = _container(request).user_ai_service
        config = payload.to_config()
        service.add_config(config)
        logger.info(
            "User AI config added: id=%s type=%s", config.id, config.api_type.value
        )
        return UserAiConfigListPayload.from_list(service.list_configs())

    @app.post("/user-ai/configs/validate", dependencies=[Depends(require_admin)])
    async def validate_user_ai_config(
        payload: UserAiConfigPayload, request: Request
    ) -> dict[str, bool]:
        """Check a config's credentials against its backend without saving it."""
        service = _container(request).user_ai_service
        return {"valid": await service.validate_config(payload.to_config())}

    @app.put("/user-ai/configs/{config_id}", dependencies=[Depends(require_admin)])
    async def update_user_ai_config(
        config_id: str, payload: UserAiConfigPayload, request: Request
    ) -> UserAiConfigListPayload:
        """Replace a saved user AI config."""
        service = _container(request).user_ai_service
        _require_user_ai_config(service, config_id)
        service.update_config(payload.to_config(config_id))
        return UserAiConfigListPayload.from_list(service.list_configs())

    @app.delete("/user-ai/configs/{config_id}", dependencies=[Depends(require_admin)])
    async def delete_user_ai_config(
        config_id: str, request: Request
    ) -> UserAiConfigListPayload:
        """Delete a saved user AI config."""
        service = _container(request).user_ai_service
        _require_user_ai_config(service, config_id)
        service.delete_config(config_id)
        return UserAiConfigListPayload.from_list(service.list_configs())

    @app.post(
        "/user-ai/configs/{config_id}/activate", dependencies=[Depends(require_admin)]
    )
    async def activate_user_ai_config(
        config_id: str, request: Request
    ) -> UserAiConfigListPayload:
        """Make a saved config the one used for recognition."""
        service = _container(request).user_ai_service
        _require_user_ai_config(service, config_id)
        service.set_active_config(config_id)
        return UserAiConfigListPayload.from_list(service.list_configs())

    @app.delete("/user-ai/configs", dependencies=[Depends(require_admin)])
    async def clear_user_ai_configs(request: Request) -> UserAiConfigListPayload:
        """Remove every saved user AI config."""
        service = _container(request).user_ai_service
        service.clear_config()
        return UserAiConfigListPayload.from_list(service.list_configs())

    return app
