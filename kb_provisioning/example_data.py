import concurrent.futures
from pathlib import Path
from typing import Any, List
from urllib.parse import urlparse

import requests
from aws_lambda_powertools import Logger
from botocore.client import BaseClient

logger: Logger = Logger(child=True)

DOWNLOAD_TIMEOUT_SECONDS: int = 120
DEFAULT_STORAGE_CLASS: str = "REDUCED_REDUNDANCY"

EXAMPLE_DOCUMENT_URLS: List[str] = [
    "https://s2.q4cdn.com/299287126/files/doc_financials/2024/ar/Amazon-com-Inc-2023-Annual-Report.pdf",
    "https://s2.q4cdn.com/299287126/files/doc_financials/2024/ar/Amazon-com-Inc-2023-Shareholder-Letter.pdf",
    "https://s2.q4cdn.com/299287126/files/doc_financials/2023/ar/Amazon-2022-Annual-Report.pdf",
    "https://s2.q4cdn.com/299287126/files/doc_financials/2023/ar/2022-Shareholder-Letter.pdf",
    "https://s2.q4cdn.com/299287126/files/doc_financials/2022/ar/Amazon-2021-Annual-Report.pdf",
    "https://s2.q4cdn.com/299287126/files/doc_financials/2022/ar/2021-Shareholder-Letter.pdf",
    "https://s2.q4cdn.com/299287126/files/doc_financials/2021/ar/Amazon-2020-Annual-Report.pdf",
    "https://s2.q4cdn.com/299287126/files/doc_financials/2021/ar/Amazon-2020-Shareholder-Letter-and-1997-Shareholder-Letter.pdf",
    "https://s2.q4cdn.com/299287126/files/doc_financials/2020/ar/2019-Annual-Report.pdf",
    "https://s2.q4cdn.com/299287126/files/doc_financials/2020/ar/2019-Shareholder-Letter.pdf",
]


def file_name_from_url(url: str) -> str:
    return Path(urlparse(url).path).name


class ExampleDataLoader:
    """Seeds the knowledge-base bucket with public example documents."""

    def __init__(
        self,
        s3_client: BaseClient,
        session: Any = requests,
        max_workers: int = 10,
        storage_class: str = DEFAULT_STORAGE_CLASS,
    ):
        self.s3_client: BaseClient = s3_client
        self.session: Any = session
        self.max_workers: int = max_workers
        self.storage_class: str = storage_class

    def download(self, url: str, work_dir: Path) -> Path:
        response = self.session.get(url, timeout=DOWNLOAD_TIMEOUT_SECONDS)
        response.raise_for_status()

        local_path: Path = work_dir / file_name_from_url(url)
        local_path.write_bytes(response.content)
        logger.debug(f"Downloaded {url} to {local_path}")
        return local_path

    def upload(self, local_path: Path, bucket: str) -> str:
        key: str = local_path.name
        self.s3_client.upload_file(
            str(local_path),
            bucket,
            key,
            ExtraArgs={"StorageClass": self.storage_class},
        )
        return key

    def load(self, bucket: str, urls: List[str], work_dir: Path) -> List[str]:
        work_dir.mkdir(parents=True, exist_ok=True)

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_workers
        ) as executor:
            local_paths: List[Path] = list(
                executor.map(lambda url: self.download(url, work_dir), urls)
            )
            logger.info(f"Downloaded {len(local_paths)} example documents")

            keys: List[str] = list(
                executor.map(
                    lambda path: self.upload(path, bucket), local_paths
                )
            )

        logger.info(f"Uploaded {len(keys)} example documents to {bucket}")
        return keys
