from pathlib import Path
from typing import Optional

import typer

from .config import Settings
from .logging import get_logger
from .pdf.ingestion import EncryptedPdfError, PdfOpenError
from .pipeline import FigureExtractor
from .regions.detector import ModelLoadError, load_detector
from .output.manifest import build_manifest, write_manifest_json

app = typer.Typer(help="layoutcrop – figure and table extractor for PDFs", no_args_is_help=True)


def safe_echo(message: str) -> None:
    """Echo message with ASCII fallback for consoles without Unicode."""
    try:
        typer.echo(message)
    except UnicodeEncodeError:
        fallback_message = (
            message.replace("✅", "[OK]")
            .replace("📄", "[PDF]")
            .replace("🖼️", "[IMG]")
            .replace("⚠️", "[WARN]")
            .replace("📁", "[DIR]")
            .replace("📋", "[LIST]")
        )
        typer.echo(fallback_message)


@app.command()
def extract(
    pdf_path: Path = typer.Argument(..., exists=True, readable=True, help="Path to the PDF file to process"),
    model: Path = typer.Option(Path("yolov8n-doclaynet.onnx"), "--model", "-m", help="YOLO DocLayNet ONNX model"),
    out: Path = typer.Option(Path("output"), "--out", "-o", help="Output directory for extracted regions"),
    workers: Optional[int] = typer.Option(None, min=1, help="Worker threads (default: CPU count)"),
    conf_threshold: float = typer.Option(0.30, min=0.0, max=1.0, help="Minimum detection confidence"),
    iou_threshold: float = typer.Option(0.45, min=0.0, max=1.0, help="IoU threshold for non-maximum suppression"),
    min_box_size: int = typer.Option(30, min=0, help="Minimum region width/height in detection pixels"),
    input_size: int = typer.Option(1024, min=32, help="Square detector input size"),
    detection_dpi: int = typer.Option(150, min=1, help="Render resolution used for detection"),
    extraction_dpi: int = typer.Option(300, min=1, help="Render resolution used for crops"),
    max_inference: Optional[int] = typer.Option(
        None, min=1, help="Concurrent detector calls allowed (default: one per worker)"
    ),
    write_manifest: bool = typer.Option(True, "--write-manifest/--no-write-manifest", help="Write JSON manifest file"),
) -> None:
    """
    Detect Pictures and Tables in a PDF and save them as PNG crops.

    Every page is run through the layout model; surviving regions are cut
    out of a high-resolution render of the page.
    """
    logger = get_logger(__name__)

    overrides = {} if workers is None else {"workers": workers}
    settings = Settings(
        output_dir=out,
        model_path=model,
        conf_threshold=conf_threshold,
        iou_threshold=iou_threshold,
        min_box_size=min_box_size,
        input_size=input_size,
        detection_dpi=detection_dpi,
        extraction_dpi=extraction_dpi,
        max_concurrent_inference=max_inference,
        **overrides,
    )

    try:
        detector = load_detector(settings.model_path)
    except ModelLoadError as exc:
        logger.error(f"Cannot load layout model: {exc}")
        raise typer.Exit(code=1) from exc

    extractor = FigureExtractor(detector, settings)

    try:
        report = extractor.extract(pdf_path, out)
    except EncryptedPdfError as exc:
        logger.error(f"Cannot process encrypted PDF: {exc}")
        raise typer.Exit(code=2) from exc
    except PdfOpenError as exc:
        logger.error(f"Failed to open PDF: {exc}")
        raise typer.Exit(code=1) from exc

    if not report.paths:
        logger.warning("No Pictures or Tables found")
        logger.info("Try lowering --conf-threshold or --min-box-size if you expected regions")

    manifest_path = None
    if write_manifest:
        manifest = build_manifest(report, pdf_path)
        manifest_path = write_manifest_json(manifest, out)

    labels = {}
    for artifact in report.artifacts:
        name = artifact.label.display_name
        labels[name] = labels.get(name, 0) + 1

    safe_echo("\n✅ Extraction complete!")
    safe_echo(f"📄 Processed: {pdf_path} ({report.page_count} pages)")
    safe_echo(f"🖼️  Regions extracted: {len(report.paths)}")
    for name, count in sorted(labels.items()):
        safe_echo(f"   {name}: {count}")
    if report.failed_pages:
        safe_echo(f"⚠️  Skipped pages: {', '.join(str(i) for i in report.failed_pages)}")
    safe_echo(f"📁 Output directory: {report.images_dir}")
    if manifest_path:
        safe_echo(f"📋 Manifest: {manifest_path.name}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
