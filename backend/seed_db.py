"""One-time DB setup: create tables and check the bundled quiz content."""
from quizboard.config import settings
from quizboard.db.session import Base, get_engine
from quizboard.db import models  # noqa: F401  (registers tables on Base.metadata)
from quizboard.services.quiz_content import get_quiz_provider

# 1. Create all tables
engine = get_engine()
Base.metadata.create_all(bind=engine)
print("✅ All tables created")

# 2. Validate quiz files so a broken one shows up before the API serves it
provider = get_quiz_provider()
quizzes = provider.get_all_quizzes()
for quiz in quizzes:
    print(f"  {quiz.id:<24} {len(quiz.questions):>3} questions  {quiz.title}")

print(f"\n🎉 Database is ready, {len(quizzes)} quizzes in {settings.QUIZ_DATA_DIR}")
