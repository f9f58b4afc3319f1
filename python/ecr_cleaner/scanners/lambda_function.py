"""Images deployed as Lambda container-image functions."""

from typing import Optional, Set

from ecr_cleaner.scanners.base import AwsReferenceScanner
from ecr_cleaner.utils.concurrency import fail_fast_join
from ecr_cleaner.utils.image import ImageRef, parse_image_uri


class LambdaFunctionScanner(AwsReferenceScanner):
    kind = "lambda"
    service_name = "lambda"

    async def _collect_references(self) -> Set[ImageRef]:
        functions = await self._list("list_functions", "Functions")
        image_functions = [f["FunctionName"] for f in functions if f.get("PackageType") == "Image"]
        self.logger.debug(f"{self.name}: {len(image_functions)} of {len(functions)} function(s) use container images")

        refs = await fail_fast_join(
            (self._function_image(name) for name in image_functions), self.limit, name=f"{self.name} functions"
        )
        return {ref for ref in refs if ref is not None}

    async def _function_image(self, function_name: str) -> Optional[ImageRef]:
        response = await self._call("get_function", FunctionName=function_name)
        return parse_image_uri((response.get("Code") or {}).get("ImageUri"))
