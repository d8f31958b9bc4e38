from .schemas import DetectionResult


def format_summary(result: DetectionResult) -> str:
    """
    Plain text summary of a detection run, one fact per line.
    Color runs list a count per color, template runs a single object count.
    """
    lines = []
    if result.source_name:
        lines.append(f"File Name: {result.source_name}")
    lines.append(f"Processing Time: {result.processing_time_ms:.0f} ms")
    lines.append(f"Image Size: {result.image_size[0]}x{result.image_size[1]}")

    if result.label_counts:
        lines.append("Detected Regions:")
        for name, count in result.label_counts.items():
            lines.append(f"  {name}: {count}")
    else:
        lines.append(f"Detected Object Count: {result.detected_count}")

    return "\n".join(lines) + "\n"
