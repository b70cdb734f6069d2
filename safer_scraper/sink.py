import csv
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)


@dataclass
class SinkReport:
    csv_path: Path = None
    json_path: Path = None
    urls_path: Path = None

    @property
    def wrote_anything(self):
        return any((self.csv_path, self.json_path, self.urls_path))


def records_frame(records, columns):
    # Every configured column present, in order, as strings; extra keys are dropped
    df = pd.DataFrame([dict(r) for r in records])
    for col in columns:
        if col not in df.columns:
            df[col] = ''
    df = df[list(columns)]
    df = df.fillna('')
    for col in df.columns:
        df[col] = df[col].astype(str)
    return df


def _atomic_write(path, write, newline=None):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile('w', delete=False, dir=path.parent, encoding='utf-8', newline=newline) as tf:
        write(tf)
        temp_path = tf.name
    os.replace(temp_path, path)
    return path


def write_records_csv(records, columns, path):
    rows = records_frame(records, columns).to_dict(orient="records")

    def write(tf):
        writer = csv.DictWriter(tf, fieldnames=list(columns), quoting=csv.QUOTE_ALL, lineterminator='\n')
        writer.writeheader()
        for row in rows:
            writer.writerow(row)

    return _atomic_write(path, write, newline='')


def write_records_json(records, columns, path):
    rows = records_frame(records, columns).to_dict(orient="records")
    return _atomic_write(path, lambda tf: json.dump(rows, tf, indent=2))


def write_urls(urls, path):
    return _atomic_write(path, lambda tf: tf.write('\n'.join(urls)))


def batch_stamp(now=None):
    now = now or datetime.now(timezone.utc)
    return now.strftime('%Y-%m-%dT%H-%M-%S-%fZ')


def write_outputs(result, config, output_dir=None, stamp=None):
    """
    Writes the batch CSV when any record was accepted and, in urls mode, the accepted URL list.
    Writes nothing when nothing was accepted.
    """
    output_dir = Path(output_dir or config.output_dir)
    stamp = stamp or batch_stamp()
    report = SinkReport()
    if result.records:
        report.csv_path = write_records_csv(
            result.records, config.columns, output_dir / f"fmcsa_batch_{config.batch_index}_{stamp}.csv")
        logger.info("[EXPORT] CSV written: %s (rows=%d)", report.csv_path, len(result.records))
        if config.export_json:
            report.json_path = write_records_json(
                result.records, config.columns, output_dir / f"fmcsa_batch_{config.batch_index}_{stamp}.json")
            logger.info("[EXPORT] JSON written: %s", report.json_path)
    elif not config.urls_only:
        logger.info("[EXPORT] No data extracted for this batch.")
    if config.urls_only:
        if result.urls:
            report.urls_path = write_urls(
                result.urls, output_dir / f"fmcsa_remaining_urls_{config.batch_index}_{stamp}.txt")
            logger.info("[EXPORT] Remaining URLs saved: %s (count=%d)", report.urls_path, len(result.urls))
        else:
            logger.info("[EXPORT] No URLs accepted for this batch.")
    return report
