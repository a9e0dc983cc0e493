# resume_processor/services/candidates/skills.py
"""Best-effort keyword categorization for catalog skills."""
from __future__ import annotations

from resume_processor.models.candidate import SkillCategory

# Precedence matters: first matching set wins
CATEGORY_KEYWORDS = (
    (SkillCategory.CERTIFICATION, ("certified", "certification", "pmp", "scrum", "agile")),
    (SkillCategory.LANGUAGE, ("english", "spanish", "french", "mandarin", "hindi")),
    (SkillCategory.FRAMEWORK, ("react", "angular", "vue", "express", "django", "spring", "laravel")),
    (SkillCategory.TOOL, ("git", "docker", "jira", "slack", "figma", "photoshop")),
    (SkillCategory.TECHNICAL, (
        "javascript", "python", "java", "react", "node", "sql", "html", "css", "api",
        "git", "docker", "kubernetes", "aws", "azure", "mongodb", "postgresql",
    )),
)


def categorize_skill(name: str) -> SkillCategory:
    """Substring match on the lower-cased name; SOFT_SKILL when nothing matches."""
    lowered = (name or "").lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(kw in lowered for kw in keywords):
            return category
    return SkillCategory.SOFT_SKILL
