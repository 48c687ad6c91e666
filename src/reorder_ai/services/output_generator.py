"""
Output Generator Service
=========================
Turns a pipeline snapshot into a consumer-ready package and exports it.

Output Structure:
outputs/
├── reorder_forecast.csv     one row per product, display headers
├── reorder_summary.json     totals, status and training metrics
└── run_metadata.json        export bookkeeping
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from ..models.inventory import PipelineSnapshot
from ..utils.constants import OUTPUT_CONFIG, RESULT_COLUMNS
from ..utils.logger import get_logger, log_dataframe_info

logger = get_logger(__name__)


@dataclass
class OutputPackage:
    """
    Complete output of one forecast run.

    Attributes
    ----------
    table : pd.DataFrame
        Result table with display headers
    summary : Dict[str, Any]
        Totals for stakeholders
    metadata : Dict[str, Any]
        Processing metadata
    """
    table: pd.DataFrame = field(default_factory=pd.DataFrame)
    summary: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)


class OutputGenerator:
    """
    Build and export reorder forecast outputs.

    Usage
    -----
    >>> generator = OutputGenerator(output_dir="./outputs")
    >>> package = generator.generate_output_package(pipeline.snapshot)
    >>> generator.export_all(package)
    """

    def __init__(
        self,
        output_dir: Optional[Union[str, Path]] = None,
        config: Optional[Dict] = None
    ):
        self.config = config or OUTPUT_CONFIG

        if output_dir:
            self.output_dir = Path(output_dir)
        else:
            self.output_dir = Path(self.config.get('output_base_dir', 'outputs'))

        logger.info(f"OutputGenerator initialized: output_dir={self.output_dir}")

    def generate_output_package(self, snapshot: PipelineSnapshot) -> OutputPackage:
        """
        Generate the output package for a snapshot.

        Rows are ordered reorder-first, then by ascending days of supply,
        so the most urgent products come first.
        """
        package = OutputPackage()

        frame = snapshot.to_frame()
        if len(frame) > 0:
            frame = frame.assign(_urgent=frame['action'].eq('Reorder'))
            frame = frame.sort_values(
                ['_urgent', 'days_of_supply'],
                ascending=[False, True],
                kind='mergesort'
            ).drop(columns='_urgent').reset_index(drop=True)

        package.table = frame.rename(columns=RESULT_COLUMNS)
        log_dataframe_info(logger, 'reorder_forecast', package.table)

        package.summary = self._generate_summary(snapshot, frame)
        package.metadata = {
            'generated_at': datetime.now().isoformat(),
            'run_id': snapshot.run_id,
            'rows': len(frame),
            'output_version': '1.0'
        }

        return package

    def _generate_summary(self, snapshot: PipelineSnapshot, frame: pd.DataFrame) -> Dict[str, Any]:
        summary = {
            'generated_at': datetime.now().strftime('%Y-%m-%d %H:%M'),
            'status': snapshot.status_label,
            'state': snapshot.state.value,
            'total_products': snapshot.record_count,
            'reorder_count': snapshot.reorder_count,
            'hold_count': snapshot.record_count - snapshot.reorder_count,
        }

        if snapshot.failure_reason is not None:
            summary['failure_reason'] = snapshot.failure_reason.value
            summary['error_message'] = snapshot.error_message

        if snapshot.training is not None:
            summary['training'] = {
                'epochs': snapshot.training.epochs,
                'final_loss': round(snapshot.training.final_loss, 4),
                'accuracy': round(snapshot.training.accuracy, 3),
            }

        if len(frame) > 0:
            summary['total_safety_stock'] = int(frame['safety_stock'].fillna(0).sum())
            reorder_rows = frame[frame['action'] == 'Reorder']
            summary['reorder_items'] = [
                {'id': int(row.id), 'name': row.name, 'score': row.score}
                for row in reorder_rows.itertuples(index=False)
            ]

        return summary

    def export_all(
        self,
        package: OutputPackage,
        formats: List[str] = None
    ) -> Dict[str, str]:
        """
        Export outputs to files.

        Parameters
        ----------
        package : OutputPackage
            The output package to export
        formats : List[str], optional
            Export formats ('csv', 'json'). Default: both

        Returns
        -------
        Dict[str, str]
            Mapping of output type to file path
        """
        formats = formats or ['csv', 'json']
        exported = {}

        self.output_dir.mkdir(parents=True, exist_ok=True)

        if 'csv' in formats:
            path = self.output_dir / self.config.get('table_filename', 'reorder_forecast.csv')
            package.table.to_csv(path, index=False, encoding=self.config.get('csv_encoding', 'utf-8'))
            exported['table_csv'] = str(path)
            logger.info(f"Exported forecast table to {path}")

        if 'json' in formats:
            path = self.output_dir / self.config.get('summary_filename', 'reorder_summary.json')
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(package.summary, f, indent=2, default=str)
            exported['summary_json'] = str(path)
            logger.info(f"Exported run summary to {path}")

        package.metadata['exported_files'] = exported
        meta_path = self.output_dir / 'run_metadata.json'
        with open(meta_path, 'w', encoding='utf-8') as f:
            json.dump(package.metadata, f, indent=2, default=str)

        logger.info(f"Export complete: {len(exported)} files written")

        return exported
