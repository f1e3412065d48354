import os
from flask import Blueprint, request, Response, stream_with_context

# Import PDF utility functions and custom exceptions
from pdf_utils import decode_images, write_pdf, iter_pdf_chunks, PDFConversionError, NoImagesError
from uploads import UploadSession
from database import record_conversion

# Create Blueprint
pdf_bp = Blueprint('pdf', __name__)


def _text_response(message, status):
    return Response(message, status=status, mimetype='text/plain')

def _stream_size(stream):
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


@pdf_bp.route('/convert', methods=['POST'])
def convert_images_to_pdf_endpoint():
    """API endpoint that turns the uploaded 'images' parts into one PDF, one page per image."""
    files = [f for f in request.files.getlist('images') if f and f.filename]
    if not files:
        return _text_response("No images uploaded.", 400)

    print(f"Received {len(files)} image(s) for PDF conversion")

    session = UploadSession()
    try:
        uploads = session.save_all(files)
        pages = decode_images(
            [session.read(uploaded) for uploaded in uploads],
            [uploaded.original_filename for uploaded in uploads]
        )
        pdf_stream = write_pdf(pages)
        content_length = _stream_size(pdf_stream)

    except NoImagesError as e:
        session.close()
        return _text_response(str(e), 400)
    except PDFConversionError as e:
        # Decode and assembly failures: the whole batch fails, nothing is streamed
        session.close()
        print(f"PDF Conversion Error: {e}")
        record_conversion(len(files), [], 'failed', str(e))
        return _text_response("Server error during conversion", 500)
    except Exception as e:
        # Storage errors and anything else unexpected
        session.close()
        print(f"Unexpected error during PDF conversion: {e}")
        record_conversion(len(files), [], 'failed', str(e))
        return _text_response("Server error during conversion", 500)

    page_sizes = [(page.width, page.height) for page in pages]
    print(f"PDF generated successfully: {len(pages)} page(s)")
    record_conversion(len(pages), page_sizes, 'success')

    def release():
        pdf_stream.close()
        session.close()

    def generate():
        try:
            yield from iter_pdf_chunks(pdf_stream)
            print("PDF sent to client successfully")
        finally:
            release()

    response = Response(stream_with_context(generate()), mimetype='application/pdf')
    response.headers['Content-Disposition'] = 'attachment; filename=converted.pdf'
    response.headers['Content-Length'] = str(content_length)
    response.headers['X-Page-Count'] = str(len(pages))
    # Runs even if the body is never iterated (client gone before the first chunk)
    response.call_on_close(release)
    return response
