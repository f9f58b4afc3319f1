"""
Pytest configuration file.

Sets up the Python path so test files can import from the python/ directory,
and provides fake boto3 clients whose paginators return canned pages.
"""
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add python directory to path for all tests
_python_dir = Path(__file__).parent.parent / 'python'
_python_dir_abs = str(_python_dir.absolute())
if _python_dir_abs not in sys.path:
    sys.path.insert(0, _python_dir_abs)

ACCOUNT = "123456789012"
REGION = "us-east-1"


def ecr_uri(repository: str, tag: str, account: str = ACCOUNT, region: str = REGION) -> str:
    return f"{account}.dkr.ecr.{region}.amazonaws.com/{repository}:{tag}"


def make_client(pages=None, region: str = REGION) -> MagicMock:
    """Build a fake boto3 client.

    Args:
        pages: operation name -> either a list of pages, or a callable taking
            the paginate() keyword arguments and returning a list of pages
    """
    pages = pages or {}
    paginators = {}
    client = MagicMock()
    client.meta.region_name = region

    def get_paginator(operation):
        if operation in paginators:
            return paginators[operation]
        paginator = paginators[operation] = MagicMock()

        def paginate(**kwargs):
            source = pages.get(operation, [])
            return list(source(**kwargs) if callable(source) else source)

        paginator.paginate.side_effect = paginate
        return paginator

    client.get_paginator.side_effect = get_paginator
    return client
