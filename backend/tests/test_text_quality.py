from resume_processor.services.resumes.text_quality import assess_text_quality, clean_text


class TestCleanText:
    def test_normalizes_whitespace_and_line_endings(self):
        raw = "  Jane   Doe \r\nSoftware\tEngineer\r\n\r\n\r\n\r\nSkills:  Python\x0c"
        assert clean_text(raw) == "Jane Doe\nSoftware Engineer\n\nSkills: Python"

    def test_is_idempotent(self):
        samples = [
            "a \t b\n\n\n\nc",
            "\x00header\r\n  body  \r\n",
            "single line",
            "\n\n  \n\n",
        ]
        for raw in samples:
            once = clean_text(raw)
            assert clean_text(once) == once

    def test_non_string_input_is_empty(self):
        assert clean_text(None) == ""
        assert clean_text(42) == ""
        assert clean_text("") == ""


class TestAssessTextQuality:
    def test_keyword_rich_text_is_excellent(self):
        text = (
            "Jane Doe - Senior Engineer\n"
            "Email: jane@example.com  Phone: 555 123 4567\n"
            "Experience: 8 years of backend work at Acme Corp.\n"
            "Education: BSc Computer Science, State University.\n"
            "Skills: Python, SQL, Docker"
        )
        result = assess_text_quality(text)
        assert result.confidence == 100
        assert result.quality == "excellent"
        assert result.issues == []
        assert result.keywords_found >= 2
        assert result.character_count == len(text)

    def test_short_text_without_keywords_is_poor(self):
        result = assess_text_quality("Jane Doe")
        # -30 for length, -25 for keywords
        assert result.confidence == 45
        assert result.quality == "poor"
        assert "Very short text extracted" in result.issues
        assert "Few resume-related keywords found" in result.issues

    def test_symbol_heavy_text_is_penalized(self):
        text = "experience education " + "#$%&*@!" * 20
        result = assess_text_quality(text)
        assert "High ratio of special characters" in result.issues
        assert result.confidence == 80
        assert result.quality == "good"

    def test_empty_input(self):
        for value in (None, "", 3.14):
            result = assess_text_quality(value)
            assert result.quality == "poor"
            assert result.confidence == 0
            assert result.issues == ["No text extracted"]

    def test_to_dict_is_json_ready(self):
        data = assess_text_quality("experience and education").to_dict()
        assert set(data) == {"quality", "confidence", "issues", "word_count", "character_count", "keywords_found"}
        assert data["word_count"] == 3
