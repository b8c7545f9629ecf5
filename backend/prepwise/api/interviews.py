from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from prepwise.core.database import InterviewDB, get_interview_db
from prepwise.core.dependencies import require_user
from prepwise.models.interview import Interview
from prepwise.models.user import User

router = APIRouter()

@router.get("/mine", response_model=List[Interview])
async def my_interviews(user: User = Depends(require_user),
                        interview_db: InterviewDB = Depends(get_interview_db)):
    """Interviews generated for the current user, newest first"""
    return interview_db.get_interviews_by_user(user.id)

@router.get("/latest", response_model=List[Interview])
async def latest_interviews(limit: int = Query(20, ge=1, le=100),
                            user: User = Depends(require_user),
                            interview_db: InterviewDB = Depends(get_interview_db)):
    """Finalized interviews from other users, newest first"""
    return interview_db.get_latest_interviews(user.id, limit)

@router.get("/{interview_id}", response_model=Interview)
async def get_interview(interview_id: str,
                        user: User = Depends(require_user),
                        interview_db: InterviewDB = Depends(get_interview_db)):
    interview = interview_db.get_interview_by_id(interview_id)
    if not interview:
        raise HTTPException(status_code=404, detail="Interview not found")
    return interview
