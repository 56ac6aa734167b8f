import json
from pathlib import Path

import pytest

from studyquiz.core.schemas import Quiz


QUIZ_DATA = {
    "id": "networking-basics",
    "title": "Networking Basics",
    "questions": [
        {
            "id": 1,
            "type": "single_choice",
            "question": "Which device forwards frames by MAC address?",
            "options": ["A. Router", "B. Switch", "C. Hub"],
            "correctAnswer": "B",
        },
        {
            "id": 2,
            "type": "multiple_choice",
            "question": "Which are transport layer protocols?",
            "points": 2,
            "options": ["A. TCP", "B. UDP", "C. IP"],
            "correctAnswers": ["A", "B"],
        },
        {
            "id": 3,
            "type": "short_answer",
            "question": "How does TCP open a connection?",
            "points": 4,
            "keywords": {"required": ["TCP", "handshake"], "bonus": ["SYN"]},
            "answer": "TCP uses a three-way handshake (SYN, SYN-ACK, ACK).",
        },
        {
            "id": 4,
            "type": "calculation",
            "question": "What is the throughput of the link?",
            "points": 2,
            "expectedAnswers": ["100 Mbps"],
        },
        {
            "id": 5,
            "type": "multi_part",
            "question": "Subnet 192.168.1.17/24.",
            "points": 4,
            "parts": [
                {"part": "a", "question": "Network address?"},
                {"part": "b", "question": "Subnet mask?"},
            ],
            "expectedAnswers": {"a": ["192.168.1.0"], "b": ["255.255.255.0", "/24"]},
        },
        {
            "id": 6,
            "type": "matching",
            "question": "Match each service to its protocol.",
            "points": 3,
            "items": [
                {"id": 1, "description": "Web pages", "correctAnswer": "HTTP"},
                {"id": 2, "description": "Name lookup", "correctAnswer": "DNS"},
                {"id": 3, "description": "Sending mail", "answer": "SMTP"},
            ],
            "options": ["HTTP", "DNS", "SMTP"],
        },
    ],
}

CATALOG_DATA = {
    "quizzes": [
        {
            "id": "networking-basics",
            "title": "Networking Basics",
            "description": "Devices, protocols and subnets.",
            "totalQuestions": 6,
            "estimatedTime": "15 min",
            "difficulty": "easy",
        }
    ]
}


@pytest.fixture
def quiz_data() -> dict:
    return json.loads(json.dumps(QUIZ_DATA))


@pytest.fixture
def quiz(quiz_data) -> Quiz:
    return Quiz.model_validate(quiz_data)


@pytest.fixture
def data_dir(tmp_path: Path, quiz_data) -> Path:
    (tmp_path / "quizzes.json").write_text(json.dumps(CATALOG_DATA), encoding="utf-8")
    (tmp_path / "networking-basics.json").write_text(json.dumps(quiz_data), encoding="utf-8")
    return tmp_path
