# backend/studyquiz/app.py

import os, uuid, logging
from pathlib import Path
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.status import HTTP_422_UNPROCESSABLE_ENTITY
from starlette.middleware.base import BaseHTTPMiddleware
from dotenv import load_dotenv

from studyquiz.core.schemas import (
    CheckAnswerRequest,
    CheckAnswerResponse,
    MatchingQuestion,
    MultiPartQuestion,
    Question,
    QuestionId,
    ReviewRequest,
    SafeQuestion,
    SaveAnswerRequest,
    SaveAnswerResponse,
    SessionRequest,
    StartQuizRequest,
    StartQuizResponse,
    SubmitResponse,
)
from studyquiz.core.feedback import encouragement_for, question_type_label
from studyquiz.core.loader import QuizFormatError, QuizNotFoundError, load_catalog, load_quiz
from studyquiz.core.openai_reviewer import review_with_llm
from studyquiz.core.progress import ProgressStore, dashboard_stats, recent_activity
from studyquiz.core.session import QuizSession

# ------------------------------------------------------------
# Setup
# ------------------------------------------------------------
load_dotenv()
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger("quiz")

app = FastAPI(title="Study Quiz API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Middleware to log requests
class LogRequestMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        logger.info(f"Incoming {request.method} {request.url.path}")
        return await call_next(request)

app.add_middleware(LogRequestMiddleware)

# In-memory stores: { session_id: QuizSession } and per-quiz progress
SESSION_STORE: dict[str, QuizSession] = {}
PROGRESS = ProgressStore()

# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------
def data_dir() -> Path:
    return Path(os.getenv("QUIZ_DATA_DIR", "./data"))

def get_session(session_id: str) -> QuizSession:
    session = SESSION_STORE.get(session_id)
    if session is None:
        logger.warning(f"Session not found: {session_id}")
        raise HTTPException(status_code=404, detail="Session not found or expired")
    return session

def get_question(session: QuizSession, question_id: QuestionId) -> Question:
    question = session.quiz.get_question(question_id)
    if question is None:
        logger.warning(f"Question not found for quiz={session.quiz.id}, qid={question_id}")
        raise HTTPException(status_code=404, detail="Question not found")
    return question

def to_safe_question(q: Question) -> SafeQuestion:
    """Strip answer keys before a question is sent to the browser."""
    items = None
    if isinstance(q, MatchingQuestion):
        items = [{"id": i.id, "description": i.description} for i in q.items]
    return SafeQuestion(
        id=q.id,
        type=q.type,
        type_label=question_type_label(q.type),
        question=q.question,
        points=q.points,
        options=getattr(q, "options", None),
        parts=q.parts if isinstance(q, MultiPartQuestion) else None,
        items=items,
        hint=q.hint,
        image=q.image,
    )

def navigation(session: QuizSession) -> dict:
    return {
        "status": "ok",
        "answered": session.answered_count(),
        "total": len(session.quiz.questions),
        "navigation": session.answer_statuses(),
    }

# ------------------------------------------------------------
# Exception handlers
# ------------------------------------------------------------
def jsonable_errors(exc: RequestValidationError) -> list:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "status": "error",
            "detail": jsonable_errors(exc),
        },
    )

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"status": "error", "message": str(exc)},
    )

# ------------------------------------------------------------
# Routes
# ------------------------------------------------------------
@app.get("/quizzes")
def list_quizzes():
    try:
        catalog = load_catalog(data_dir())
    except QuizNotFoundError:
        catalog = []
    except QuizFormatError as e:
        logger.error(f"Catalog error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    quizzes = []
    for quiz in catalog:
        progress = PROGRESS.get(quiz.id)
        quizzes.append(
            {
                **quiz.model_dump(),
                "completed": bool(progress and progress.completed),
                "score": progress.score if progress and progress.completed else None,
            }
        )
    return {"status": "ok", "quizzes": quizzes}

@app.get("/dashboard")
def dashboard():
    try:
        catalog = load_catalog(data_dir())
    except QuizNotFoundError:
        catalog = []
    titles = {q.id: q.title for q in catalog}
    progress = PROGRESS.all()

    activity = [
        {
            "quiz_id": quiz_id,
            "title": titles[quiz_id],
            "completed": record.completed,
            "score": record.score,
            "last_attempted": record.last_attempted,
        }
        for quiz_id, record in recent_activity(progress)
        if quiz_id in titles
    ]
    return {
        "status": "ok",
        "stats": dashboard_stats(progress, len(catalog)),
        "recent_activity": activity,
    }

@app.post("/start_quiz", response_model=StartQuizResponse)
def start_quiz(req: StartQuizRequest):
    try:
        quiz = load_quiz(data_dir(), req.quiz_id)
    except QuizNotFoundError as e:
        logger.warning(str(e))
        raise HTTPException(status_code=404, detail="Quiz not found")
    except QuizFormatError as e:
        logger.error(str(e))
        raise HTTPException(status_code=500, detail=f"Quiz content is invalid: {e}")

    session_id = str(uuid.uuid4())
    SESSION_STORE[session_id] = QuizSession(quiz)
    logger.debug(f"Session {session_id} started quiz={quiz.id} with {len(quiz.questions)} questions")

    return {
        "status": "ok",
        "session_id": session_id,
        "quiz_id": quiz.id,
        "title": quiz.title,
        "questions": [to_safe_question(q) for q in quiz.questions],
    }

@app.post("/save_answer", response_model=SaveAnswerResponse)
def save_answer(req: SaveAnswerRequest):
    session = get_session(req.session_id)
    question = get_question(session, req.question_id)

    if req.part_id is not None:
        if not isinstance(question, (MultiPartQuestion, MatchingQuestion)):
            raise HTTPException(status_code=400, detail="part_id is only valid for multi-part and matching questions")
        if not isinstance(req.user_answer, (str, type(None))):
            raise HTTPException(status_code=400, detail="A part answer must be a string")
        session.save_part_answer(question.id, req.part_id, req.user_answer or "")
    else:
        session.save_answer(question.id, req.user_answer)

    return navigation(session)

@app.post("/check_answer", response_model=CheckAnswerResponse)
def check_answer(req: CheckAnswerRequest):
    session = get_session(req.session_id)
    question = get_question(session, req.question_id)

    if req.user_answer is not None:
        session.save_answer(question.id, req.user_answer)

    result = session.grade(question.id)
    logger.debug(
        f"Checked answer session={req.session_id}, qid={question.id}, type={question.type}, "
        f"kind={result.kind.value}, score={result.score}/{question.points}"
    )
    return {"status": "ok", "result": result}

@app.get("/review_answers/{session_id}", response_model=SaveAnswerResponse)
def review_answers(session_id: str):
    return navigation(get_session(session_id))

@app.post("/submit_quiz", response_model=SubmitResponse)
def submit_quiz(req: SessionRequest):
    session = get_session(req.session_id)
    result = session.submit()
    progress = PROGRESS.record(result)
    tier, message = encouragement_for(result.score)

    del SESSION_STORE[req.session_id]
    logger.info(f"Submitted session={req.session_id} quiz={result.quiz_id} score={result.score}%")

    return {
        "status": "ok",
        "result": result,
        "progress": progress,
        "tier": tier,
        "message": message,
    }

@app.post("/review_with_llm", response_model=CheckAnswerResponse)
def review_answer_with_llm(req: ReviewRequest):
    session = get_session(req.session_id)
    question = get_question(session, req.question_id)

    try:
        result = review_with_llm(question, session.answer(question.id))
    except RuntimeError as e:
        logger.error(f"RuntimeError: {e}")
        return JSONResponse(
            {"status": "error", "message": "OpenAI API key is missing."},
            status_code=500,
        )

    return {"status": "ok", "result": result}

@app.get("/healthz")
def healthz():
    return {"ok": True}
