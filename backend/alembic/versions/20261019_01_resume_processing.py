"""resumes + processing_logs + candidate graph + skill catalog

Revision ID: 20261019_01_resume_processing
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_01_resume_processing"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "candidates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("full_name", sa.String(300), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("linkedin_url", sa.Text(), nullable=True),
        sa.Column("github_url", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("years_experience", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(32), nullable=False, server_default="ACTIVE"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_candidates_created_at", "candidates", ["created_at"])

    op.create_table(
        "resumes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("processing_id", sa.String(64), nullable=False, unique=True),
        sa.Column("original_file_name", sa.Text(), nullable=False),
        sa.Column("file_path", sa.Text(), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=True),
        sa.Column("file_type", sa.String(16), nullable=False),
        sa.Column("mime_type", sa.Text(), nullable=True),
        sa.Column("uploaded_by", sa.String(128), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="PROCESSING"),
        sa.Column("processing_stage", sa.String(64), nullable=False, server_default="TEXT_EXTRACTION"),
        sa.Column("extracted_text", sa.Text(), nullable=True),
        sa.Column("metadata_json", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("candidate_id", sa.Uuid(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["candidate_id"], ["candidates.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_resumes_status", "resumes", ["status"])
    op.create_index("ix_resumes_uploaded_at", "resumes", ["uploaded_at"])

    op.create_table(
        "processing_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("resume_id", sa.Uuid(), nullable=False),
        sa.Column("step", sa.String(64), nullable=False),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("error_details", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["resume_id"], ["resumes.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_processing_logs_resume_started", "processing_logs", ["resume_id", "started_at"])

    op.create_table(
        "work_experience",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("candidate_id", sa.Uuid(), nullable=False),
        sa.Column("company", sa.String(300), nullable=False),
        sa.Column("position", sa.String(300), nullable=False),
        sa.Column("start_date", sa.DateTime(), nullable=True),
        sa.Column("end_date", sa.DateTime(), nullable=True),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["candidate_id"], ["candidates.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_work_experience_candidate_id", "work_experience", ["candidate_id"])

    op.create_table(
        "education",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("candidate_id", sa.Uuid(), nullable=False),
        sa.Column("institution", sa.String(300), nullable=False),
        sa.Column("degree", sa.String(300), nullable=False),
        sa.Column("field", sa.String(300), nullable=True),
        sa.Column("start_year", sa.Integer(), nullable=True),
        sa.Column("end_year", sa.Integer(), nullable=True),
        sa.Column("gpa", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(["candidate_id"], ["candidates.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_education_candidate_id", "education", ["candidate_id"])

    op.create_table(
        "skills",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("category", sa.String(32), nullable=False, server_default="SOFT_SKILL"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_skills_name_lower", "skills", [sa.text("lower(name)")])

    op.create_table(
        "candidate_skills",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("candidate_id", sa.Uuid(), nullable=False),
        sa.Column("skill_id", sa.Uuid(), nullable=False),
        sa.Column("proficiency", sa.Float(), nullable=False),
        sa.Column("years_experience", sa.Float(), nullable=True),
        sa.ForeignKeyConstraint(["candidate_id"], ["candidates.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["skill_id"], ["skills.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("candidate_id", "skill_id", name="uq_candidate_skill"),
    )

    op.create_table(
        "certifications",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("candidate_id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(300), nullable=False),
        sa.Column("issuer", sa.String(300), nullable=False),
        sa.Column("issue_date", sa.DateTime(), nullable=True),
        sa.Column("expiry_date", sa.DateTime(), nullable=True),
        sa.Column("credential_id", sa.String(200), nullable=True),
        sa.Column("credential_url", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["candidate_id"], ["candidates.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_certifications_candidate_id", "certifications", ["candidate_id"])


def downgrade():
    op.drop_index("ix_certifications_candidate_id", table_name="certifications")
    op.drop_table("certifications")
    op.drop_table("candidate_skills")
    op.drop_index("ix_skills_name_lower", table_name="skills")
    op.drop_table("skills")
    op.drop_index("ix_education_candidate_id", table_name="education")
    op.drop_table("education")
    op.drop_index("ix_work_experience_candidate_id", table_name="work_experience")
    op.drop_table("work_experience")
    op.drop_index("ix_processing_logs_resume_started", table_name="processing_logs")
    op.drop_table("processing_logs")
    op.drop_index("ix_resumes_uploaded_at", table_name="resumes")
    op.drop_index("ix_resumes_status", table_name="resumes")
    op.drop_table("resumes")
    op.drop_index("ix_candidates_created_at", table_name="candidates")
    op.drop_table("candidates")
