"""
FastAPI REST API Module

HTTP surface for kiosk front ends: roster and catalog administration,
student sessions, exchanges and the redemption log. Prompts and effects are
the client's concern here; the server runs with null collaborators.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import uvicorn

from . import __version__
from .catalog import PrizeDraft
from .config import get_config
from .errors import ExchangeRejection, Rejected, ValidationError
from .kiosk import Kiosk
from .logging_config import setup_logging
from .models import Prize


# Pydantic models for API requests
class CreateStudentRequest(BaseModel):
    name: str


class ImportStudentsRequest(BaseModel):
    text: str = Field(..., description="One student name per line")


class AdjustPointsRequest(BaseModel):
    delta: int = Field(..., description="Points to add (negative to deduct)")


class PrizeRequest(BaseModel):
    name: Optional[str] = None
    price: Optional[int] = None
    stock: Optional[int] = None
    image: str = ""
    category: Optional[str] = None

    def to_draft(self, prize_id: Optional[str] = None) -> PrizeDraft:
        return PrizeDraft(
            name=self.name,
            price=self.price,
            stock=self.stock,
            image=self.image,
            category=self.category,
            id=prize_id
        )


class LoginRequest(BaseModel):
    student_id: str


class AdminLoginRequest(BaseModel):
    password: str


class ExchangeRequest(BaseModel):
    prize_id: str


def _validation_failed(error: ValidationError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={
            "message": error.message,
            "missing": list(error.missing),
            "invalid": list(error.invalid)
        }
    )


def _prize_view(kiosk: Kiosk, prize: Prize) -> Dict[str, Any]:
    data = prize.to_dict()
    data["display_category"] = prize.display_category(kiosk.config.default_category)
    blocked = kiosk.can_redeem(prize.id)
    data["redeemable"] = blocked is None
    data["blocked_reason"] = blocked.value if blocked else None
    return data


def _session_view(kiosk: Kiosk) -> Dict[str, Any]:
    student = kiosk.current_student
    return {
        "view": kiosk.view.value,
        "student": student.to_dict() if student else None
    }


def get_kiosk(request: Request) -> Kiosk:
    return request.app.state.kiosk


def create_app(kiosk: Optional[Kiosk] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    if kiosk is None:
        kiosk = Kiosk.from_config()
        kiosk.start()

    app = FastAPI(
        title="Prize House API",
        description="Classroom reward-points kiosk",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.kiosk = kiosk

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.get("/snapshot")
    async def get_snapshot(kiosk: Kiosk = Depends(get_kiosk)):
        """Full stored state"""
        return kiosk.store.snapshot.to_dict()

    # Roster endpoints

    @app.get("/students")
    async def list_students(kiosk: Kiosk = Depends(get_kiosk)) -> List[Dict[str, Any]]:
        return [s.to_dict() for s in kiosk.store.snapshot.students]

    @app.post("/students", status_code=status.HTTP_201_CREATED)
    async def create_student(request: CreateStudentRequest, kiosk: Kiosk = Depends(get_kiosk)):
        result = kiosk.catalog.add_student(request.name)
        if isinstance(result, ValidationError):
            raise _validation_failed(result)
        return result.to_dict()

    @app.post("/students/import", status_code=status.HTTP_201_CREATED)
    async def import_students(request: ImportStudentsRequest, kiosk: Kiosk = Depends(get_kiosk)):
        added = kiosk.catalog.import_students(request.text)
        return {"imported": len(added), "students": [s.to_dict() for s in added]}

    @app.delete("/students/{student_id}")
    async def delete_student(student_id: str, kiosk: Kiosk = Depends(get_kiosk)):
        return {"deleted": kiosk.catalog.delete_student(student_id)}

    @app.post("/students/{student_id}/points")
    async def adjust_points(
        student_id: str,
        request: AdjustPointsRequest,
        kiosk: Kiosk = Depends(get_kiosk)
    ):
        student = kiosk.catalog.adjust_points(student_id, request.delta)
        if student is None:
            raise HTTPException(status_code=404, detail="Student not found")
        return student.to_dict()

    # Catalog endpoints

    @app.get("/prizes")
    async def list_prizes(kiosk: Kiosk = Depends(get_kiosk)) -> List[Dict[str, Any]]:
        return [_prize_view(kiosk, p) for p in kiosk.store.snapshot.prizes]

    @app.post("/prizes", status_code=status.HTTP_201_CREATED)
    async def create_prize(request: PrizeRequest, kiosk: Kiosk = Depends(get_kiosk)):
        result = kiosk.catalog.create_prize(request.to_draft())
        if isinstance(result, ValidationError):
            raise _validation_failed(result)
        return result.to_dict()

    @app.put("/prizes/{prize_id}")
    async def update_prize(prize_id: str, request: PrizeRequest, kiosk: Kiosk = Depends(get_kiosk)):
        result = kiosk.catalog.update_prize(prize_id, request.to_draft(prize_id))
        if isinstance(result, ValidationError):
            raise _validation_failed(result)
        return {"updated": result is not None, "prize": result.to_dict() if result else None}

    @app.delete("/prizes/{prize_id}")
    async def delete_prize(prize_id: str, kiosk: Kiosk = Depends(get_kiosk)):
        return {"deleted": kiosk.catalog.delete_prize(prize_id)}

    # Session endpoints

    @app.get("/session")
    async def get_session(kiosk: Kiosk = Depends(get_kiosk)):
        return _session_view(kiosk)

    @app.post("/session/login")
    async def login(request: LoginRequest, kiosk: Kiosk = Depends(get_kiosk)):
        if kiosk.login(request.student_id) is None:
            raise HTTPException(status_code=404, detail="Student not found")
        return _session_view(kiosk)

    @app.post("/session/logout")
    async def logout(kiosk: Kiosk = Depends(get_kiosk)):
        kiosk.logout()
        return _session_view(kiosk)

    @app.post("/session/admin")
    async def admin_login(request: AdminLoginRequest, kiosk: Kiosk = Depends(get_kiosk)):
        if not kiosk.check_admin_password(request.password):
            raise HTTPException(status_code=403, detail="Incorrect password")
        kiosk.session.enter_admin()
        return _session_view(kiosk)

    # Exchange endpoints

    @app.post("/exchange")
    async def exchange(request: ExchangeRequest, kiosk: Kiosk = Depends(get_kiosk)):
        result = await kiosk.redeem(request.prize_id)
        if isinstance(result, Rejected):
            code = 404 if result.reason == ExchangeRejection.PRIZE_NOT_FOUND else 409
            raise HTTPException(status_code=code, detail={"reason": result.reason.value})

        student = kiosk.current_student
        return {
            "entry": result.entry.to_dict(),
            "student": student.to_dict() if student else None,
            "prize": next(p.to_dict() for p in result.prizes if p.id == request.prize_id)
        }

    @app.get("/logs")
    async def list_logs(kiosk: Kiosk = Depends(get_kiosk)) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in kiosk.store.snapshot.logs]

    @app.delete("/logs")
    async def clear_logs(kiosk: Kiosk = Depends(get_kiosk)):
        return {"cleared": kiosk.catalog.clear_log()}

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, debug: bool = False):
    """Run the API server"""
    config = get_config()
    setup_logging(
        level="DEBUG" if debug else config.log_level,
        log_format=config.log_format,
        log_file=config.log_file
    )
    uvicorn.run(
        create_app(),
        host=host or config.api_host,
        port=port or config.api_port,
        log_level="debug" if debug else "info"
    )
