import os
import tempfile
from collections import namedtuple
import img2pdf
from PyPDF2 import PdfReader
from PIL import Image # For header decoding and validation
from io import BytesIO # For handling byte streams

import config # UPLOAD_DIR and VERIFY_OUTPUT are read at call time
from config import ALLOWED_IMAGE_FORMATS, JPEG_VARIANTS, PAGE_DPI, SIZE_TOLERANCE, OUTPUT_CHUNK_SIZE, SPOOL_MAX_BYTES


class PDFConversionError(Exception):
    """Custom exception for PDF conversion errors."""
    pass

class NoImagesError(PDFConversionError):
    """Raised when there is nothing to convert."""
    pass

class ImageDecodeError(PDFConversionError):
    """Raised when an image cannot be parsed or has no usable dimensions."""
    pass

class UnsupportedImageError(ImageDecodeError):
    """Raised for images Pillow can read but the PDF pages cannot carry."""
    pass


# One page of the output document. width/height are intrinsic pixel dimensions.
PageSpec = namedtuple('PageSpec', ['width', 'height', 'image_data', 'filename'])


def _has_alpha(img):
    return img.mode in ('RGBA', 'LA', 'PA') or 'transparency' in img.info

def _flatten_alpha(img):
    """Composites an image with transparency onto white and re-encodes it as PNG."""
    rgba = img.convert('RGBA')
    background = Image.new('RGB', rgba.size, (255, 255, 255))
    background.paste(rgba, mask=rgba.getchannel('A'))
    output = BytesIO()
    background.save(output, format='PNG')
    return output.getvalue()


def read_page_spec(image_bytes, filename=None):
    """
    Decodes an image header and returns the PageSpec for it.

    Args:
        image_bytes: Raw bytes of one uploaded image.
        filename: Name used in error messages.

    Returns:
        PageSpec: Pixel dimensions plus the bytes to embed.

    Raises:
        ImageDecodeError: Empty, corrupt, or zero-sized image.
        UnsupportedImageError: Format not in ALLOWED_IMAGE_FORMATS, or animated.
    """
    label = filename or "image"

    if not image_bytes:
        raise ImageDecodeError(f"File is empty: {label}")

    try:
        img = Image.open(BytesIO(image_bytes))
        img_format = img.format
        img.verify() # Verify image integrity

        # verify() leaves the image unusable, so re-open to read the rest
        img = Image.open(BytesIO(image_bytes))
        width, height = img.size
        frame_count = getattr(img, 'n_frames', 1)
        has_alpha = _has_alpha(img)
    except Exception as e:
        # Catch Pillow errors (UnidentifiedImageError, truncated headers, etc.)
        raise ImageDecodeError(f"Invalid or corrupted image file: {label}. Error: {e}")

    if img_format in JPEG_VARIANTS:
        # Multi-picture JPEG from a phone camera: only the first frame becomes a page
        img_format = 'JPEG'
        frame_count = 1

    if img_format not in ALLOWED_IMAGE_FORMATS:
        raise UnsupportedImageError(
            f"Unsupported image format '{img_format}' in file: {label}. "
            f"Only {', '.join(sorted(ALLOWED_IMAGE_FORMATS))} allowed."
        )
    if frame_count > 1:
        raise UnsupportedImageError(f"Animated images are not supported: {label}")
    if width <= 0 or height <= 0:
        raise ImageDecodeError(f"Image has no usable dimensions ({width}x{height}): {label}")

    if has_alpha:
        image_bytes = _flatten_alpha(img)

    return PageSpec(width, height, image_bytes, filename)


def decode_images(images, filenames=None):
    """Turns an ordered sequence of image buffers into PageSpecs, same order."""
    if not images:
        raise NoImagesError("No images uploaded.")
    if filenames is None:
        filenames = [None] * len(images)
    if len(filenames) != len(images):
        raise ValueError("filenames must match images one-to-one")

    return [
        read_page_spec(data, name or f"image {index + 1}")
        for index, (data, name) in enumerate(zip(images, filenames))
    ]


def read_page_sizes(pdf_stream):
    """Returns the (width, height) of every page in a PDF stream, in default units."""
    reader = PdfReader(pdf_stream)
    sizes = []
    for page in reader.pages:
        # Pages over 14400 units are written with a scaled-down MediaBox plus /UserUnit
        unit = float(page.get('/UserUnit', 1))
        sizes.append((float(page.mediabox.width) * unit, float(page.mediabox.height) * unit))
    return sizes


def _sizes_match(sizes, expected):
    return len(sizes) == len(expected) and all(
        abs(w - ew) < SIZE_TOLERANCE and abs(h - eh) < SIZE_TOLERANCE
        for (w, h), (ew, eh) in zip(sizes, expected)
    )


def write_pdf(pages, outputstream=None):
    """
    Writes one page per PageSpec, each sized to the image and filled by it.

    Returns the output stream rewound to the start. When no stream is given a
    SpooledTemporaryFile is used, spilling into the upload directory.
    """
    if not pages:
        raise NoImagesError("No images uploaded.")

    owns_stream = outputstream is None
    if owns_stream:
        spool_dir = config.UPLOAD_DIR if os.path.isdir(config.UPLOAD_DIR) else None
        outputstream = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_BYTES, dir=spool_dir)

    # Fixed 72 dpi: one pixel is one PDF unit, so the page is exactly w x h
    layout_fun = img2pdf.get_fixed_dpi_layout_fun((PAGE_DPI, PAGE_DPI))

    try:
        img2pdf.convert(
            [page.image_data for page in pages],
            layout_fun=layout_fun,
            outputstream=outputstream,
            # The pikepdf engine rejects pages under 3 units; the internal one only warns
            engine=img2pdf.Engine.internal,
            allow_oversized=True,
            first_frame_only=True,
        )
        outputstream.seek(0)

        if config.VERIFY_OUTPUT:
            sizes = read_page_sizes(outputstream)
            expected = [(float(page.width), float(page.height)) for page in pages]
            if not _sizes_match(sizes, expected):
                raise PDFConversionError(
                    f"Generated PDF does not match input: expected {len(expected)} page(s) {expected}, got {sizes}"
                )
            outputstream.seek(0)

        return outputstream

    except PDFConversionError:
        if owns_stream:
            outputstream.close()
        raise # Re-raise specific conversion errors
    except Exception as e:
        # Catch errors from img2pdf or PdfReader
        if owns_stream:
            outputstream.close()
        print(f"Error during PDF generation: {e}")
        raise PDFConversionError(f"PDF generation failed: {e}")


def assemble_pdf(images, filenames=None, outputstream=None):
    """
    Converts an ordered sequence of image buffers into a single PDF.

    Page i is sized to the intrinsic pixel dimensions of images[i] and the
    image covers it exactly. One bad image fails the whole batch.

    Args:
        images: Sequence of bytes, one per image, in page order.
        filenames: Optional names matching images, used in error messages.
        outputstream: Optional writable, seekable binary stream.

    Returns:
        The output stream, positioned at the start of the PDF.

    Raises:
        NoImagesError: If images is empty.
        ImageDecodeError: If any image cannot be decoded.
        PDFConversionError: If the document cannot be produced.
    """
    pages = decode_images(images, filenames)
    return write_pdf(pages, outputstream)


def iter_pdf_chunks(pdf_stream, chunk_size=None):
    """Yields the stream in chunks and closes it when done or abandoned."""
    chunk_size = chunk_size or OUTPUT_CHUNK_SIZE
    try:
        while True:
            chunk = pdf_stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        pdf_stream.close()
