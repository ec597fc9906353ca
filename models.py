from __future__ import annotations

from sqlalchemy import JSON, Column, Integer, String, Text

from db import Base
from utils import iso_utc_now, new_uuid

# Store shape: snake_case columns, ids and timestamps assigned here rather than by callers.


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_uuid)
    name = Column(Text, nullable=False, default="")
    email = Column(String, nullable=False, default="", index=True)
    role = Column(String, nullable=False, default="interviewer", index=True)
    avatar = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False, default=iso_utc_now, index=True)
    updated_at = Column(Text, nullable=False, default=iso_utc_now, onupdate=iso_utc_now)


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String, primary_key=True, default=new_uuid)
    title = Column(Text, nullable=False, default="")
    department = Column(Text, nullable=False, default="")
    location = Column(Text, nullable=False, default="")
    type = Column(String, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    skills = Column(JSON, nullable=True)
    salary_range = Column(Text, nullable=False, default="")
    status = Column(String, nullable=False, default="draft", index=True)
    applicants = Column(Integer, nullable=False, default=0)
    created_by = Column(String, nullable=False, default="", index=True)
    created_at = Column(Text, nullable=False, default=iso_utc_now, index=True)
    updated_at = Column(Text, nullable=False, default=iso_utc_now, onupdate=iso_utc_now)


class Candidate(Base):
    __tablename__ = "candidates"

    id = Column(String, primary_key=True, default=new_uuid)
    name = Column(Text, nullable=False, default="")
    email = Column(Text, nullable=False, default="")
    phone = Column(Text, nullable=False, default="")
    job_id = Column(String, nullable=True, index=True)
    job_title = Column(Text, nullable=False, default="")
    stage = Column(String, nullable=False, default="applied", index=True)
    skills = Column(JSON, nullable=True)
    experience = Column(Text, nullable=False, default="")
    source = Column(String, nullable=False, default="")
    applied_date = Column(Text, nullable=True)
    resume_url = Column(Text, nullable=True)
    resume_name = Column(Text, nullable=True)
    resume_size = Column(Integer, nullable=True)
    resume_uploaded_at = Column(Text, nullable=True)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(Text, nullable=False, default=iso_utc_now, index=True)
    updated_at = Column(Text, nullable=False, default=iso_utc_now, onupdate=iso_utc_now)


class Interview(Base):
    __tablename__ = "interviews"

    id = Column(String, primary_key=True, default=new_uuid)
    candidate_id = Column(String, nullable=True, index=True)
    candidate_name = Column(Text, nullable=False, default="")
    job_id = Column(String, nullable=True, index=True)
    job_title = Column(Text, nullable=False, default="")
    type = Column(String, nullable=False, default="")
    # `date` holds the full UTC timestamp; `time` is the derived time-of-day.
    date = Column(Text, nullable=True, index=True)
    time = Column(Text, nullable=True)
    duration = Column(Integer, nullable=True)
    mode = Column(String, nullable=True)
    meeting_link = Column(Text, nullable=True)
    location = Column(Text, nullable=True)
    interviewers = Column(JSON, nullable=True)
    status = Column(String, nullable=False, default="scheduled", index=True)
    notes = Column(Text, nullable=False, default="")
    created_at = Column(Text, nullable=False, default=iso_utc_now, index=True)
    updated_at = Column(Text, nullable=False, default=iso_utc_now, onupdate=iso_utc_now)


class Feedback(Base):
    __tablename__ = "feedback"

    id = Column(String, primary_key=True, default=new_uuid)
    interview_id = Column(String, nullable=True, index=True)
    candidate_id = Column(String, nullable=True, index=True)
    candidate_name = Column(Text, nullable=False, default="")
    job_id = Column(String, nullable=True)
    job_title = Column(Text, nullable=False, default="")
    interviewer_id = Column(String, nullable=True, index=True)
    interviewer_name = Column(Text, nullable=False, default="")
    ratings = Column(JSON, nullable=True)
    comments = Column(Text, nullable=False, default="")
    strengths = Column(Text, nullable=False, default="")
    weaknesses = Column(Text, nullable=False, default="")
    recommendation = Column(String, nullable=False, default="hold")
    created_at = Column(Text, nullable=False, default=iso_utc_now, index=True)
    updated_at = Column(Text, nullable=False, default=iso_utc_now, onupdate=iso_utc_now)


class Offer(Base):
    __tablename__ = "offers"

    id = Column(String, primary_key=True, default=new_uuid)
    candidate_id = Column(String, nullable=True, index=True)
    candidate_name = Column(Text, nullable=False, default="")
    job_id = Column(String, nullable=True)
    job_title = Column(Text, nullable=False, default="")
    salary = Column(Integer, nullable=True)
    bonus = Column(Integer, nullable=True)
    equity = Column(Text, nullable=False, default="")
    joining_date = Column(Text, nullable=True)
    expiry_date = Column(Text, nullable=True)
    benefits = Column(JSON, nullable=True)
    signatory_name = Column(Text, nullable=False, default="")
    signatory_title = Column(Text, nullable=False, default="")
    status = Column(String, nullable=False, default="draft", index=True)
    created_at = Column(Text, nullable=False, default=iso_utc_now, index=True)
    updated_at = Column(Text, nullable=False, default=iso_utc_now, onupdate=iso_utc_now)


class AuditLog(Base):
    __tablename__ = "audit_log"

    id = Column(String, primary_key=True, default=new_uuid)
    action = Column(String, nullable=False, default="", index=True)
    entity_type = Column(String, nullable=False, default="", index=True)
    entity_id = Column(String, nullable=False, default="", index=True)
    user_id = Column(String, nullable=False, default="", index=True)
    details = Column(Text, nullable=False, default="")
    changes = Column(JSON, nullable=True)
    timestamp = Column(Text, nullable=False, default=iso_utc_now, index=True)
