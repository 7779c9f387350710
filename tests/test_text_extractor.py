"""Tests for PDF/DOCX text extraction."""
import docx
import fitz
import pytest

from app.services.text_extractor import TextExtractor


@pytest.mark.asyncio
async def test_extract_docx_paragraphs_and_tables(tmp_path):
    document = docx.Document()
    document.add_paragraph("Data platform overview")
    document.add_paragraph("   ")
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Warehouse"
    table.rows[0].cells[1].text = "Snowflake"
    path = tmp_path / "overview.docx"
    document.save(str(path))

    text = await TextExtractor(ocr_enabled=False).extract(str(path), ".docx")

    assert text == "Data platform overview\nWarehouse | Snowflake"


@pytest.mark.asyncio
async def test_extract_pdf_text_layer(tmp_path):
    pdf = fitz.open()
    page = pdf.new_page()
    page.insert_text((72, 72), "Our customers are retail banks in three regions.")
    path = tmp_path / "brief.pdf"
    pdf.save(str(path))
    pdf.close()

    text = await TextExtractor(ocr_enabled=False).extract(str(path), "pdf")

    assert "retail banks" in text


@pytest.mark.asyncio
async def test_unsupported_type_returns_empty(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("plain text")
    assert await TextExtractor(ocr_enabled=False).extract(str(path), ".txt") == ""


@pytest.mark.asyncio
async def test_unreadable_docx_raises(tmp_path):
    path = tmp_path / "broken.docx"
    path.write_bytes(b"not a zip archive")
    with pytest.raises(RuntimeError):
        await TextExtractor(ocr_enabled=False).extract(str(path), "docx")
