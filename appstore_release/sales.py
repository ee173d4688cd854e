"""Sales report summaries.

Reports are served gzipped as tab separated text with a header row. Each row is
returned as a dict keyed by column name ("SKU", "Units", "Begin Date", ...).
"""

import csv
import gzip
import io
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Union

from .api import AppStoreConnectApi
from .errors import NotFoundError
from .models import SalesReportFrequency
from .utils import get_logger

logger = get_logger(__name__)

SalesReportRow = Dict[str, str]
SalesReportRowFilter = Callable[[SalesReportRow], bool]


def report_date_filter(report_date: Union[date, datetime], frequency: SalesReportFrequency) -> str:
    """Format the report date the way ``filter[reportDate]`` expects for a frequency"""
    if isinstance(report_date, datetime):
        report_date = report_date.date()

    if frequency == SalesReportFrequency.WEEKLY:
        # weekly reports are keyed by the Sunday ending the ISO week
        week_end = report_date + timedelta(days=6 - report_date.weekday())
        return week_end.isoformat()
    if frequency == SalesReportFrequency.MONTHLY:
        return report_date.strftime("%Y-%m")
    if frequency == SalesReportFrequency.YEARLY:
        return report_date.strftime("%Y")
    return report_date.isoformat()


def parse_sales_report(content: bytes) -> List[SalesReportRow]:
    text = gzip.decompress(content).decode("utf-8")
    reader = csv.DictReader(io.StringIO(text), delimiter="\t")
    return [dict(row) for row in reader]


class SalesClient:
    def __init__(self, api: AppStoreConnectApi) -> None:
        self.api = api

    async def download_sales_report_summary(
        self,
        vendor_id: str,
        frequency: Union[SalesReportFrequency, str] = SalesReportFrequency.WEEKLY,
        report_date: Union[date, datetime, None] = None,
        row_filter: Optional[SalesReportRowFilter] = None,
    ) -> List[SalesReportRow]:
        """
        Download the summary sales report of a vendor.

        Args:
            vendor_id: Vendor number of the account
            frequency: Report frequency, weekly by default
            report_date: Any day inside the wanted period, today by default
            row_filter: Optional predicate selecting the rows to keep

        Returns:
            The report rows. A report that does not exist (yet) yields ``[]``.
        """
        frequency = SalesReportFrequency(frequency)
        filter_date = report_date_filter(report_date or date.today(), frequency)

        try:
            content = await self.api.download(
                "/v1/salesReports",
                params={
                    "filter[frequency]": frequency.value,
                    "filter[reportDate]": filter_date,
                    "filter[reportType]": "SALES",
                    "filter[reportSubType]": "SUMMARY",
                    "filter[vendorNumber]": vendor_id,
                },
                error_message=f"Error downloading {frequency.value.lower()} sales report {filter_date} for vendor {vendor_id}",
            )
        except NotFoundError:
            logger.info(f"No {frequency.value.lower()} sales report {filter_date} for vendor {vendor_id}")
            return []

        rows = parse_sales_report(content)
        if row_filter is not None:
            rows = [row for row in rows if row_filter(row)]
        logger.info(f"Downloaded sales report {filter_date} for vendor {vendor_id}: {len(rows)} rows")
        return rows
