from PIL import Image

from resume_processor.services.resumes.ocr import (
    DOCX_OCR_FAILED_TEXT,
    PDF_OCR_FAILED_TEXT,
    OcrResult,
    extract_docx_images,
    preprocess_image,
)


def ocr_result(text, confidence=90.0):
    return OcrResult(text=text, confidence=confidence, units=1)


def test_pdf_confidence_averages_only_units_with_text(make_blank_pdf, make_ocr_runner, ocr_root):
    pdf = make_blank_pdf(pages=2)
    runner, factory = make_ocr_runner([ocr_result("Jane Doe", 80.0), ocr_result("   ", 10.0)])

    result = runner.run_pdf(pdf)

    assert result.text == "Jane Doe"
    assert result.confidence == 80.0
    assert result.units == 2
    assert factory.acquired == factory.released == 2
    assert list(ocr_root.iterdir()) == []


def test_pdf_pages_are_joined_with_blank_line(make_blank_pdf, make_ocr_runner):
    pdf = make_blank_pdf(pages=2)
    runner, _ = make_ocr_runner([ocr_result("Page one", 90.0), ocr_result("Page two", 70.0)])

    result = runner.run_pdf(pdf)

    assert result.text == "Page one\n\nPage two"
    assert result.confidence == 80.0


def test_only_first_pages_are_recognized(make_blank_pdf, make_ocr_runner):
    pdf = make_blank_pdf(pages=4)
    runner, factory = make_ocr_runner([ocr_result("one"), ocr_result("two")])

    result = runner.run_pdf(pdf)

    assert result.units == 2
    assert factory.acquired == 2


def test_no_text_yields_sentinel(make_blank_pdf, make_ocr_runner, ocr_root):
    pdf = make_blank_pdf()
    runner, _ = make_ocr_runner([ocr_result("")])

    result = runner.run_pdf(pdf)

    assert result.text == PDF_OCR_FAILED_TEXT
    assert result.confidence == 0.0
    assert list(ocr_root.iterdir()) == []


def test_failing_unit_is_skipped_and_worker_released(make_blank_pdf, make_ocr_runner):
    pdf = make_blank_pdf(pages=2)
    runner, factory = make_ocr_runner([RuntimeError("tesseract crashed"), ocr_result("Recovered", 60.0)])

    result = runner.run_pdf(pdf)

    assert result.text == "Recovered"
    assert result.confidence == 60.0
    assert factory.acquired == factory.released == 2


def test_unreadable_pdf_yields_sentinel(tmp_path, make_ocr_runner, ocr_root):
    broken = tmp_path / "broken.pdf"
    broken.write_bytes(b"not a pdf at all")
    runner, factory = make_ocr_runner([])

    result = runner.run_pdf(broken)

    assert result.text == PDF_OCR_FAILED_TEXT
    assert result.confidence == 0.0
    assert result.units == 0
    assert factory.acquired == 0
    assert list(ocr_root.iterdir()) == []


def test_unexpected_error_keeps_collected_unit_count(make_blank_pdf, make_ocr_runner, ocr_root):
    pdf = make_blank_pdf(pages=2)
    runner, factory = make_ocr_runner([ocr_result("Jane Doe"), OcrResult(text=None, confidence=50.0)])

    result = runner.run_pdf(pdf)

    assert result.text == PDF_OCR_FAILED_TEXT
    assert result.confidence == 0.0
    assert result.units == 2
    assert factory.acquired == factory.released == 2
    assert list(ocr_root.iterdir()) == []


def test_docx_images_are_recognized(make_docx, make_png, make_ocr_runner):
    docx = make_docx([], images=[make_png()])
    runner, factory = make_ocr_runner([ocr_result("Jane Doe\nPython developer", 75.0)])

    result = runner.run_docx(docx)

    assert result.text == "Jane Doe\nPython developer"
    assert result.units == 1
    assert factory.seen_paths[0].name.endswith(".processed.png")


def test_docx_without_images_yields_sentinel(make_docx, make_ocr_runner):
    docx = make_docx([])
    runner, factory = make_ocr_runner([])

    result = runner.run_docx(docx)

    assert result.text == DOCX_OCR_FAILED_TEXT
    assert result.units == 0
    assert factory.acquired == 0


def test_extract_docx_images_writes_media(make_docx, make_png, tmp_path):
    docx = make_docx(["caption"], images=[make_png("a.png"), make_png("b.png", size=(60, 60))])
    out = tmp_path / "media"
    out.mkdir()

    images = extract_docx_images(docx, out)

    assert len(images) == 2
    assert all(p.exists() and p.parent == out for p in images)


def test_preprocess_image_greyscales_and_bounds_size(tmp_path):
    source = tmp_path / "huge.png"
    Image.new("RGB", (5000, 7000), "white").save(source)

    out = preprocess_image(source, tmp_path)

    with Image.open(out) as img:
        assert img.mode == "L"
        assert img.size[0] <= 2480 and img.size[1] <= 3508
