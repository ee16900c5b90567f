# storygap/main.py
import logging
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from .ambiguity import AmbiguityChallenger
from .config import get_settings
from .errors import InvalidInput, StoryGapError
from .evaluation import evaluate_completion
from .generator import StoryGapGenerator
from .llm import GenerationClient, current_models
from .log import configure_logging
from .prompts import DIFFICULTY_LABELS
from .schemas import (
    DEFAULT_DIFFICULTY,
    MAX_WORDS,
    Difficulty,
    EvaluateRequest,
    normalize_difficulty,
    normalize_word_set,
)

configure_logging()
logger = logging.getLogger(__name__)


# ------------------- DEPENDENCIES -------------------
def get_client() -> GenerationClient:
    return GenerationClient()


def get_generator(client: GenerationClient = Depends(get_client)) -> StoryGapGenerator:
    challenger = AmbiguityChallenger(client) if get_settings().ambiguity_check else None
    return StoryGapGenerator(client=client, challenger=challenger)


# ------------------- APP -------------------
app = FastAPI(
    title="Story Gap Generator",
    description="Backend AI for sentence-gap (cloze) exercises: one sentence per target word.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(e: StoryGapError) -> JSONResponse:
    return JSONResponse(status_code=e.status_code, content=e.to_payload())


# ------------------- ROOT & HEALTH -------------------
@app.get("/", include_in_schema=False)
def root():
    return RedirectResponse(url="/docs", status_code=302)


@app.get("/health")
def health():
    return {
        "status": "ok",
        "models": current_models(),
        "ambiguity_check": get_settings().ambiguity_check,
    }


# ------------------- META -------------------
@app.get("/meta", response_class=JSONResponse)
def meta():
    return {
        "difficulties": {d.value: DIFFICULTY_LABELS[d] for d in Difficulty},
        "default_difficulty": DEFAULT_DIFFICULTY.value,
        "max_words": MAX_WORDS,
        "example": {"wordSet": ["whale", "owl"], "difficulty": "green"},
    }


# ------------------- STORY GAP -------------------
@app.post("/story-gap", response_class=JSONResponse)
def story_gap(body: Any = Body(...), generator: StoryGapGenerator = Depends(get_generator)):
    try:
        words = normalize_word_set(body)
        difficulty = normalize_difficulty(body.get("difficulty"))
        logger.info("Story gap request: %d words, difficulty=%s", len(words), difficulty.value)
        exercise = generator.generate(words, difficulty)
        return JSONResponse(content=exercise.model_dump())
    except StoryGapError as e:
        return _error_response(e)
    except Exception as e:
        logger.exception("Story gap request crashed")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/story-gap/evaluate", response_class=JSONResponse)
def story_gap_evaluate(body: Any = Body(...), client: GenerationClient = Depends(get_client)):
    try:
        try:
            req = EvaluateRequest.model_validate(body)
        except ValidationError as ve:
            raise InvalidInput(
                "invalid_input",
                "Missing required fields",
                details=ve.errors(include_url=False, include_context=False),
            ) from ve
        result = evaluate_completion(req, client=client)
        return JSONResponse(content=result.model_dump())
    except StoryGapError as e:
        return _error_response(e)
    except Exception as e:
        logger.exception("Story evaluation crashed")
        raise HTTPException(status_code=500, detail=str(e))
