#!/usr/bin/env python3
"""
ASL Biometrics - FastAPI Server
HTTP binding for telehealth identity verification with ASL signing patterns
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from . import __version__
from .config import Cfg, load_config
from .errors import BiometricError, InvalidInput, NotEnrolled
from .features import extract_motion_features, validate_motion_quality
from .schemas import WireModel, parse_motion_sequence
from .sessions import TelehealthVerifier

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


# Request models
class SessionCreateRequest(WireModel):
    patient_id: str
    provider_id: str
    session_type: str = "consultation"


class MotionRequest(WireModel):
    motion_sequence: Dict[str, Any]


def _ok(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, **payload}


def create_app(cfg: Optional[Cfg] = None, verifier: Optional[TelehealthVerifier] = None) -> FastAPI:
    """
    Build the API around a verifier.

    Args:
        cfg: Configuration; loaded from file and environment when omitted
        verifier: Session state machine; a fresh in-memory one when omitted
    """
    cfg = cfg or load_config()
    verifier = verifier or TelehealthVerifier(cfg)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🚀 Starting ASL Biometrics service...")
        logger.info(f"🔐 Verification threshold: {cfg.matching.verification_threshold}")
        yield
        logger.info("🧹 Shutting down ASL Biometrics service...")

    app = FastAPI(title="ASL Biometrics API", version=__version__, lifespan=lifespan)
    app.state.verifier = verifier

    @app.exception_handler(BiometricError)
    async def biometric_error_handler(request: Request, exc: BiometricError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()]
        error = InvalidInput("Invalid request body", errors)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.get("/health")
    def health():
        return {
            "status": "healthy",
            "service": "ASL Biometrics",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "features": [
                "hand-motion-detection",
                "identity-matching",
                "motion-analysis",
                "telehealth-verification",
            ],
        }

    # ============== Telehealth Verification API ==============

    @app.post("/api/telehealth/session", status_code=201)
    def create_session(request: SessionCreateRequest):
        result = verifier.initialize_session(
            request.patient_id, request.provider_id, request.session_type
        )
        return _ok(result.to_dict())

    @app.get("/api/telehealth/session/{session_id}")
    def session_status(session_id: str):
        return _ok(verifier.get_status(session_id).to_dict())

    @app.post("/api/telehealth/session/{session_id}/enroll")
    def enroll(session_id: str, request: MotionRequest):
        return _ok(verifier.enroll_in_session(session_id, request.motion_sequence).to_dict())

    @app.post("/api/telehealth/session/{session_id}/verify")
    def verify(session_id: str, request: MotionRequest):
        return _ok(verifier.verify_in_session(session_id, request.motion_sequence).to_dict())

    @app.post("/api/telehealth/session/{session_id}/challenge")
    def refresh_challenge(session_id: str):
        return _ok({"challenge": verifier.refresh_challenge(session_id).to_dict()})

    @app.delete("/api/telehealth/session/{session_id}")
    def end_session(session_id: str):
        ended = verifier.end_session(session_id)
        return {"success": ended, "message": "Session ended" if ended else "Session not found"}

    # ============== Biometric Profile API ==============

    @app.get("/api/biometrics/profile/{user_id}")
    def get_profile(user_id: str):
        profile = verifier.matcher.get_profile(user_id)
        if profile is None:
            raise NotEnrolled(f"User {user_id} profile not found")
        return _ok({"profile": profile.to_dict()})

    @app.delete("/api/biometrics/profile/{user_id}")
    def delete_profile(user_id: str):
        return _ok(verifier.delete_patient_data(user_id).to_dict())

    # ============== Motion Analysis API ==============

    @app.post("/api/motion/features")
    def motion_features(request: MotionRequest):
        sequence = parse_motion_sequence(request.motion_sequence)
        quality = validate_motion_quality(extract_motion_features(sequence))
        return _ok({"quality": quality.to_dict()})

    @app.post("/api/motion/analyze")
    def analyze_motion(request: MotionRequest):
        sequence = parse_motion_sequence(request.motion_sequence)
        return _ok({"analysis": verifier.analyzer.analyze(sequence).to_dict()})

    @app.get("/api/motion/challenge")
    def new_challenge():
        return _ok({"challenge": verifier.analyzer.generate_challenge().to_dict()})

    # ============== Admin/Monitoring API ==============

    @app.get("/api/admin/stats")
    def stats():
        return _ok({
            "stats": verifier.get_stats().to_dict(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    return app


def main():
    """Entry point for the server."""
    import uvicorn

    # Configure logging
    logging.basicConfig(level=logging.INFO)

    cfg = load_config()
    logger.info(f"🚀 Starting FastAPI server on http://{cfg.server.host}:{cfg.server.port}")
    logger.info(f"📚 API documentation available at http://localhost:{cfg.server.port}/docs")

    uvicorn.run(
        create_app(cfg),
        host=cfg.server.host,
        port=cfg.server.port,
        log_level="info"
    )


if __name__ == "__main__":
    main()
