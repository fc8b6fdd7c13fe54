# ============================================================================
# Seed Standard Questions
# ============================================================================
"""
Script to seed a starter set of standard questions into the database.
Questions that already exist (same title and category) are skipped.

Usage:
    python scripts/seed_questions.py
"""

import asyncio
import sys
import os

# Ensure the app directory is in the python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.core.database import Base, get_engine, get_session_maker, dispose_engine
from app.models.question import Question
from sqlalchemy import select

SAMPLE_QUESTIONS = [
    # Data structures
    {
        "title": "Depth-first traversal",
        "content": "Which of these binary tree traversals are depth-first?",
        "type": "multiple",
        "category": "Data Structures",
        "subcategory": "Trees",
        "difficulty": "easy",
        "options": [
            {"label": "A", "text": "Pre-order"},
            {"label": "B", "text": "In-order"},
            {"label": "C", "text": "Post-order"},
            {"label": "D", "text": "Level-order"},
        ],
        "answer": ["A", "B", "C"],
        "explanation": "Pre-, in- and post-order are depth-first. Level-order is breadth-first.",
        "tags": ["binary tree", "traversal"],
    },
    {
        "title": "Stack behaviour",
        "content": "Which statement about a stack is true?",
        "type": "choice",
        "category": "Data Structures",
        "subcategory": "Stacks",
        "difficulty": "easy",
        "options": [
            {"label": "A", "text": "First in, first out"},
            {"label": "B", "text": "Last in, first out"},
            {"label": "C", "text": "Any element can be accessed directly"},
            {"label": "D", "text": "Items can be inserted at any position"},
        ],
        "answer": "B",
        "explanation": "A stack is LIFO; pushes and pops only happen at the top.",
        "tags": ["stack", "LIFO"],
    },
    # Algorithms
    {
        "title": "Stable sorting",
        "content": "Which of these sorting algorithms are stable?",
        "type": "multiple",
        "category": "Algorithms",
        "subcategory": "Sorting",
        "difficulty": "medium",
        "options": [
            {"label": "A", "text": "Merge sort"},
            {"label": "B", "text": "Quick sort"},
            {"label": "C", "text": "Insertion sort"},
            {"label": "D", "text": "Heap sort"},
        ],
        "answer": ["A", "C"],
        "explanation": "Merge sort and insertion sort keep equal keys in their original order.",
        "tags": ["sorting", "stability"],
    },
    {
        "title": "Binary search complexity",
        "content": "What is the worst-case time complexity of binary search? Answer in big-O notation.",
        "type": "fill",
        "category": "Algorithms",
        "subcategory": "Searching",
        "difficulty": "easy",
        "options": [],
        "answer": "O(log n)",
        "explanation": "Each step halves the remaining range.",
        "tags": ["binary search", "complexity"],
    },
    # Networking
    {
        "title": "TCP handshake",
        "content": "How many segments does the TCP connection handshake exchange?",
        "type": "choice",
        "category": "Networking",
        "subcategory": "TCP/IP",
        "difficulty": "easy",
        "options": [
            {"label": "A", "text": "3"},
            {"label": "B", "text": "2"},
            {"label": "C", "text": "4"},
            {"label": "D", "text": "1"},
        ],
        "answer": "A",
        "explanation": "SYN, SYN-ACK and ACK.",
        "tags": ["tcp", "handshake"],
    },
    {
        "title": "HTTP status codes",
        "content": "Which status code means the requested resource was not found?",
        "type": "choice",
        "category": "Networking",
        "subcategory": "HTTP",
        "difficulty": "easy",
        "options": [
            {"label": "A", "text": "200"},
            {"label": "B", "text": "301"},
            {"label": "C", "text": "404"},
            {"label": "D", "text": "500"},
        ],
        "answer": "C",
        "explanation": "404 Not Found.",
        "tags": ["http"],
    },
    # Operating systems
    {
        "title": "Deadlock conditions",
        "content": "Circular wait alone is enough to cause a deadlock.",
        "type": "judge",
        "category": "Operating Systems",
        "subcategory": "Concurrency",
        "difficulty": "medium",
        "options": [],
        "answer": "false",
        "explanation": (
            "Deadlock needs mutual exclusion, hold and wait, no preemption "
            "and circular wait at the same time."
        ),
        "tags": ["deadlock"],
    },
    # Programming languages
    {
        "title": "List comprehensions",
        "content": "What does [x * 2 for x in range(3)] evaluate to in Python?",
        "type": "choice",
        "category": "Programming Languages",
        "subcategory": "Python",
        "difficulty": "easy",
        "options": [
            {"label": "A", "text": "[2, 4, 6]"},
            {"label": "B", "text": "[0, 2, 4]"},
            {"label": "C", "text": "[0, 1, 2]"},
            {"label": "D", "text": "6"},
        ],
        "answer": "B",
        "explanation": "range(3) yields 0, 1 and 2.",
        "tags": ["python", "comprehension"],
    },
]

async def seed_questions():
    """Seed the standard question bank"""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_session_maker()() as db:
        print("Starting question seeding...")
        created = 0

        for data in SAMPLE_QUESTIONS:
            result = await db.execute(
                select(Question)
                .where(Question.title == data["title"])
                .where(Question.category == data["category"])
            )
            if result.scalar_one_or_none():
                print(f"  [SKIP] '{data['title']}' ({data['category']}) exists.")
                continue

            db.add(Question(**data))
            created += 1
            print(f"  [CREATE] '{data['title']}' ({data['category']})")

        await db.commit()
        print(f"\nQuestion seeding completed: {created} created.")

    await dispose_engine()

if __name__ == "__main__":
    asyncio.run(seed_questions())
