import json
import random

import pytest

from resume_processor.schemas.structured_resume import CertificationDetail, StructuredResumeData
from resume_processor.services.resumes.response_parser import (
    parse_by_regex,
    parse_extraction_response,
    parse_extraction_response_details,
    parse_truncated,
    repair_json_text,
    strip_code_fences,
)


FULL_PAYLOAD = {
    "personal_info": {
        "name": "Jane Doe",
        "email": "jane@x.com",
        "phone": "+1 555 123 4567",
        "address": "Berlin",
        "linkedin": "https://linkedin.com/in/janedoe",
        "github": None,
    },
    "summary": "Backend engineer.",
    "skills": ["Python", "SQL", "Docker"],
    "experience": [
        {"company": "Acme Corp", "position": "Engineer", "start_date": "2019-01-01",
         "end_date": "2021-01-01", "is_current": False, "description": "APIs"},
        {"company": "Globex", "position": "Lead", "start_date": "2021-02-01",
         "end_date": None, "is_current": True, "description": None},
    ],
    "education": [
        {"institution": "State University", "degree": "BSc", "field": "CS",
         "start_year": 2012, "end_year": 2016, "gpa": 3.7},
    ],
    "certifications": ["AWS Solutions Architect", {"name": "CKA", "issuer": "CNCF"}],
}


def test_clean_json_parses_directly():
    data, strategy = parse_extraction_response_details(json.dumps(FULL_PAYLOAD))

    assert strategy == "direct"
    assert data.personal_info.name == "Jane Doe"
    assert data.skills == ["Python", "SQL", "Docker"]
    assert data.experience[1].is_current is True
    assert data.education[0].gpa == 3.7
    assert data.certifications[0] == "AWS Solutions Architect"
    assert isinstance(data.certifications[1], CertificationDetail)
    assert data.certifications[1].issuer == "CNCF"


def test_code_fences_and_prose_are_ignored():
    raw = "Sure! Here is the data:\n```json\n" + json.dumps(FULL_PAYLOAD, indent=2) + "\n```\nLet me know."

    data, strategy = parse_extraction_response_details(raw)

    assert strategy == "direct"
    assert data.personal_info.email == "jane@x.com"


def test_trailing_commas_are_repaired():
    raw = '{"personal_info": {"name": "Jane Doe",}, "skills": ["Python", "SQL",],}'

    data = parse_extraction_response(raw)

    assert data.personal_info.name == "Jane Doe"
    assert data.skills == ["Python", "SQL"]


def test_single_object_wrapped_in_list():
    raw = "[" + json.dumps({"personal_info": {"name": "Jane Doe"}}) + "]"

    assert parse_extraction_response(raw).personal_info.name == "Jane Doe"


def test_truncated_inside_skills_array_keeps_earlier_fields(jane_doe_response):
    cut = jane_doe_response.index('"SQL"') + 3  # ... "skills": ["Python", "SQ
    raw = jane_doe_response[:cut]

    data, strategy = parse_extraction_response_details(raw)

    assert strategy == "truncation_repair"
    assert data.personal_info.name == "Jane Doe"
    assert data.personal_info.email == "jane@x.com"
    assert data.skills == ["Python"]
    assert data.experience == []


def test_truncated_inside_experience_keeps_complete_members(jane_doe_response):
    cut = jane_doe_response.index('"position"')
    raw = jane_doe_response[:cut]

    data = parse_extraction_response(raw)

    assert data.personal_info.name == "Jane Doe"
    assert data.skills == ["Python", "SQL"]
    for entry in data.experience:
        assert entry.company == "Acme Corp"


def test_parse_truncated_cuts_back_to_last_complete_member():
    raw = '{"summary": "ok", "skills": ["A"], "personal_info": {"name": "Jane", "email": "j@'

    parsed = parse_truncated(raw)

    assert parsed["summary"] == "ok"
    assert parsed["skills"] == ["A"]


def test_regex_strategy_recovers_contact_fields():
    raw = 'garbage "name": "Jane Doe" ... "email": "jane@x.com" }}} "skills": ["Python", "Go"] {{{'

    data, strategy = parse_extraction_response_details(raw)

    assert strategy == "regex"
    assert data.personal_info.name == "Jane Doe"
    assert data.personal_info.email == "jane@x.com"
    assert data.skills == ["Python", "Go"]


def test_parse_by_regex_finds_nothing_in_plain_prose():
    assert parse_by_regex("I could not find any resume information.") is None


@pytest.mark.parametrize("raw", [None, "", "   ", "no json here", "{{{{", 42, ["a"]])
def test_unrecoverable_input_yields_empty_structure(raw):
    data, strategy = parse_extraction_response_details(raw)

    assert strategy is None
    assert data == StructuredResumeData()
    assert data.personal_info.name is None
    assert data.skills == []
    assert data.certifications == []


def test_wrong_types_are_coerced_not_rejected():
    raw = json.dumps({
        "personal_info": "Jane Doe",
        "skills": "Python, SQL",
        "experience": [{"company": "Acme", "is_current": "yes"}, "junk"],
        "education": [{"institution": "MIT", "end_year": "May 2016", "gpa": "3.9/4.0"}],
        "certifications": [None, "  ", "PMP"],
    })

    data = parse_extraction_response(raw)

    assert data.personal_info.name is None
    assert data.skills == []
    assert len(data.experience) == 1 and data.experience[0].is_current is True
    assert data.education[0].end_year == 2016
    assert data.education[0].gpa == 3.9
    assert data.certifications == ["PMP"]


def test_graduation_date_maps_to_end_year():
    raw = json.dumps({"education": [{"institution": "MIT", "graduation_date": "2015-06"}]})

    assert parse_extraction_response(raw).education[0].end_year == 2015


@pytest.mark.parametrize("number", ["NaN", "Infinity", "-Infinity", "1e400", "1" + "0" * 400])
def test_non_finite_numbers_degrade_to_none(number):
    raw = (
        '{"personal_info": {"name": "Jane Doe"}, "skills": ["Python"], '
        f'"education": [{{"institution": "MIT", "start_year": {number}, "end_year": {number}, "gpa": {number}}}]}}'
    )

    data, strategy = parse_extraction_response_details(raw)

    assert strategy == "direct"
    assert data.personal_info.name == "Jane Doe"
    assert data.skills == ["Python"]
    school = data.education[0]
    assert school.institution == "MIT"
    assert school.start_year is None
    assert school.end_year is None
    assert school.gpa is None


def test_random_truncations_never_raise():
    full = json.dumps(FULL_PAYLOAD, indent=2)
    rng = random.Random(1234)
    for cut in sorted({rng.randrange(0, len(full)) for _ in range(200)}):
        data = parse_extraction_response(full[:cut])
        assert isinstance(data, StructuredResumeData)
        assert isinstance(data.skills, list)


def test_helpers():
    assert strip_code_fences("```json\n{}\n```") == "{}"
    assert repair_json_text('{"a": [1, 2,],}') == '{"a": [1, 2]}'
    assert repair_json_text('{"skills": ["a", "b"') == '{"skills": ["a", "b"]'
