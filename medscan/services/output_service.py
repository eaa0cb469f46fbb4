"""Output service for saving identification results"""
import json
from pathlib import Path
from typing import List, Optional
from datetime import datetime

from medscan.core.config import Config
from medscan.types.medicine import AnalysisResult


class OutputService:
    """Service for saving identification results"""

    @staticmethod
    def _get_safe_image_name(source_file: Optional[str]) -> str:
        """Get safe directory name from image filename"""
        unknown_fallback = Config.get("defaults", "unknown_fallback", default="unknown")
        if not source_file:
            return unknown_fallback

        # Keep the extension and subdirectories: front.jpg and front.png get separate folders
        name = Path(source_file).as_posix().replace("/", "_")
        truncate_limit = Config.get("limits", "string_truncation_safe_name", default=100)
        safe_name = "".join(c for c in name if c.isalnum() or c in "._-")[:truncate_limit]
        return safe_name or unknown_fallback

    @staticmethod
    def save_result(
        result: AnalysisResult,
        output_dir: Path = None,
        image_name: Optional[str] = None
    ) -> Path:
        """
        Save a single identification result to JSON file in image subdirectory

        Args:
            result: AnalysisResult to save
            output_dir: Output directory (defaults to Config.OUTPUT_DIR)
            image_name: Optional image name (taken from result.source if not provided)

        Returns:
            Path to saved file
        """
        output_dir = Path(output_dir or Config.OUTPUT_DIR)

        safe_name = OutputService._get_safe_image_name(image_name or result.source)
        image_dir = output_dir / safe_name
        image_dir.mkdir(parents=True, exist_ok=True)

        results_filename = Config.get("files", "results_filename", default="results.json")
        output_path = image_dir / results_filename

        if result.success and result.record:
            # The input photo is not copied; only the record is written
            output_data = result.record.model_dump(by_alias=True, exclude={"image_url"})
        else:
            output_data = {
                "success": False,
                "error": result.error,
                "processing_time": result.processing_time,
                "timestamp": datetime.now().isoformat()
            }

        json_indent = Config.get("defaults", "json_indent", default=2)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(output_data, f, indent=json_indent, ensure_ascii=False)

        return output_path

    @staticmethod
    def save_batch_summary(
        results: List[AnalysisResult],
        output_dir: Path = None,
        summary_filename: str = None
    ) -> Path:
        """
        Save batch identification summary

        Args:
            results: List of identification results
            output_dir: Output directory
            summary_filename: Name of summary file

        Returns:
            Path to summary file
        """
        output_dir = Path(output_dir or Config.OUTPUT_DIR)
        output_dir.mkdir(parents=True, exist_ok=True)

        if not summary_filename:
            summary_filename = Config.get("files", "summary_filename", default="summary.json")
        summary_path = output_dir / summary_filename

        successful = [r for r in results if r.success]
        failed = [r for r in results if not r.success]

        summary = {
            "timestamp": datetime.now().isoformat(),
            "total": len(results),
            "successful": len(successful),
            "failed": len(failed),
            "success_rate": len(successful) / len(results) if results else 0,
            "results": [
                {
                    "success": r.success,
                    "source_file": r.source,
                    "brand_name": r.record.brand_name if r.record else None,
                    "error": r.error,
                    "processing_time": r.processing_time
                }
                for r in results
            ]
        }

        json_indent = Config.get("defaults", "json_indent", default=2)
        with open(summary_path, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=json_indent, ensure_ascii=False)

        return summary_path
