from fastapi import Request

from coursebot.services.tutor_service import TutorService


def get_tutor(request: Request) -> TutorService:
    return request.app.state.tutor
