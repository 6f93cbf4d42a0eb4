import pytest
from unittest.mock import MagicMock, patch
from expense_extractor.components.ocr_handler import OCRHandler
from expense_extractor.exception import CustomException
from expense_extractor.models import OCRResult, RecognitionProgress

IMAGE_BYTES = b"\xff\xd8fake-jpeg"

def test_ocr_handler_init_valid():
    with patch("expense_extractor.components.ocr_handler.tesseract_backend"):
        ocr = OCRHandler(backend="tesseract")
        assert ocr.backend_name == "tesseract"
        assert ocr.language == "eng"

def test_ocr_handler_init_invalid():
    with pytest.raises(CustomException) as excinfo:
        OCRHandler(backend="invalid_backend")
    assert "Unsupported OCR backend" in str(excinfo.value)

def test_ocr_handler_run_tesseract_success():
    """Tesseract text is passed through exactly as recognized."""
    with patch("expense_extractor.components.ocr_handler.tesseract_backend") as mock_backend:
        mock_backend.return_value = "Cafe Coffee Day\nTotal:\t450.00\n\n"

        ocr = OCRHandler(backend="tesseract")
        result = ocr.run(IMAGE_BYTES)

        assert isinstance(result, OCRResult)
        assert result.success is True
        assert result.text == "Cafe Coffee Day\nTotal:\t450.00\n\n"
        assert result.backend == "tesseract"
        mock_backend.assert_called_once_with(IMAGE_BYTES, "eng", None)

def test_ocr_handler_run_rapidocr_success():
    """RapidOCR entries are joined one per line."""
    with patch("expense_extractor.components.ocr_handler.rapidocr_backend") as mock_backend:
        mock_backend.return_value = [
            [[0, 0, 1, 1], "Receipt Text", 0.99],
            [[0, 2, 1, 3], "Total 120.00", 0.97],
        ]

        ocr = OCRHandler(backend="rapidocr")
        result = ocr.run(IMAGE_BYTES)

        assert result.success is True
        assert result.text == "Receipt Text\nTotal 120.00"
        assert result.backend == "rapidocr"

def test_ocr_handler_run_empty_text():
    """Backend returns an empty list (no text found)."""
    with patch("expense_extractor.components.ocr_handler.rapidocr_backend") as mock_backend:
        mock_backend.return_value = []

        ocr = OCRHandler(backend="rapidocr")
        result = ocr.run(IMAGE_BYTES)

        assert result.success is True
        assert result.text == ""

def test_ocr_handler_run_failure():
    """Exceptions are turned into a failed OCRResult by run()."""
    with patch("expense_extractor.components.ocr_handler.tesseract_backend") as mock_backend:
        mock_backend.side_effect = RuntimeError("Tesseract process timeout")

        ocr = OCRHandler(backend="tesseract")
        result = ocr.run(IMAGE_BYTES)

        assert result.success is False
        assert "Tesseract process timeout" in result.error

def test_ocr_handler_recognize_raises():
    with patch("expense_extractor.components.ocr_handler.tesseract_backend") as mock_backend:
        mock_backend.side_effect = RuntimeError("engine crashed")

        ocr = OCRHandler(backend="tesseract")
        with pytest.raises(CustomException) as excinfo:
            ocr.recognize(IMAGE_BYTES)
        assert "engine crashed" in str(excinfo.value)

def test_ocr_handler_empty_bytes():
    with patch("expense_extractor.components.ocr_handler.tesseract_backend") as mock_backend:
        ocr = OCRHandler(backend="tesseract")
        result = ocr.run(b"")

        assert result.success is False
        mock_backend.assert_not_called()

def test_ocr_handler_reports_progress_to_observer():
    events = []
    with patch("expense_extractor.components.ocr_handler.tesseract_backend") as mock_backend:
        mock_backend.return_value = "Total 10.00"

        ocr = OCRHandler(backend="tesseract", observer=events.append)
        ocr.run(IMAGE_BYTES)

    assert all(isinstance(e, RecognitionProgress) for e in events)
    assert [e.status for e in events] == ["loading image", "recognizing text", "recognized text"]
    assert events[-1].progress == 1.0
    assert events[0].backend == "tesseract"

def test_ocr_handler_observer_errors_do_not_stop_recognition():
    observer = MagicMock(side_effect=ValueError("observer broke"))
    with patch("expense_extractor.components.ocr_handler.tesseract_backend") as mock_backend:
        mock_backend.return_value = "Total 10.00"

        ocr = OCRHandler(backend="tesseract", observer=observer)
        result = ocr.run(IMAGE_BYTES)

    assert result.success is True
    assert observer.call_count == 3

def test_ocr_handler_passes_language_and_timeout():
    with patch("expense_extractor.components.ocr_handler.tesseract_backend") as mock_backend:
        mock_backend.return_value = "texto"

        ocr = OCRHandler(backend="tesseract", language="spa", timeout=5.0)
        result = ocr.run(IMAGE_BYTES)

    mock_backend.assert_called_once_with(IMAGE_BYTES, "spa", 5.0)
    assert result.language == "spa"

def test_tesseract_backend_calls_pytesseract():
    from io import BytesIO
    from PIL import Image
    from expense_extractor.components.ocr_handler import tesseract_backend

    buffer = BytesIO()
    Image.new("RGB", (20, 10), "white").save(buffer, format="JPEG")

    with patch("expense_extractor.components.ocr_handler.pytesseract.image_to_string") as mock_ocr:
        mock_ocr.return_value = "hello"
        assert tesseract_backend(buffer.getvalue(), "eng", 3) == "hello"

    _, kwargs = mock_ocr.call_args
    assert kwargs == {"lang": "eng", "timeout": 3}

def test_rapidocr_engine_is_created_once_across_threads():
    import threading
    import time
    from expense_extractor.components.ocr_handler import rapidocr_backend

    engine = MagicMock(return_value=([[[0, 0, 1, 1], "Total 5.00", 0.9]], 0.1))

    def slow_load():
        time.sleep(0.2)
        return engine

    with patch("expense_extractor.components.ocr_handler._RAPIDOCR_ENGINE", None), \
         patch("expense_extractor.components.ocr_handler._load_rapidocr_engine", side_effect=slow_load) as mock_load:
        threads = [threading.Thread(target=rapidocr_backend, args=(IMAGE_BYTES,)) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

    assert mock_load.call_count == 1
    assert engine.call_count == 4

def test_tesseract_cmd_is_applied_to_pytesseract():
    import pytesseract

    with patch.object(pytesseract.pytesseract, "tesseract_cmd", "tesseract"):
        OCRHandler(backend="tesseract", tesseract_cmd="/opt/tesseract/bin/tesseract")
        assert pytesseract.pytesseract.tesseract_cmd == "/opt/tesseract/bin/tesseract"
