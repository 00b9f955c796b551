"""
Utilities for Reports module

Provides CSV export functionality and common utility functions
for report generation and data formatting.
"""

import csv
import io
from datetime import date, datetime
from typing import Any, Dict, List

from fastapi import Response


def create_csv_response(
    data: List[Dict[str, Any]],
    filename: str,
    headers: Dict[str, str] = None
) -> Response:
    """
    Render rows as a CSV attachment.

    ``headers`` maps row keys to column titles and fixes the column order;
    keys not in it are dropped. Without it the first row's keys are used.
    An empty report still gets its header line.
    """
    fieldnames = list(headers) if headers else (list(data[0]) if data else [])
    titles = [headers[name] for name in fieldnames] if headers else fieldnames

    output = io.StringIO()
    writer = csv.writer(output)
    if titles:
        writer.writerow(titles)
    for row in data:
        writer.writerow([format_csv_value(row.get(name)) for name in fieldnames])
    content = output.getvalue()
    output.close()

    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


def format_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def prepare_summary_csv(report_data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Prepare report summary for CSV export"""
    return [{"date_range": report_data["date_range"], **report_data["summary"]}]


def prepare_top_products_csv(report_data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Prepare top products for CSV export"""
    return list(report_data["top_products"])


def prepare_top_customers_csv(report_data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Prepare top customers for CSV export"""
    return list(report_data["top_customers"])


def prepare_expense_categories_csv(report_data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Prepare expenses by category for CSV export"""
    return list(report_data["expense_categories"])


def prepare_sales_trend_csv(report_data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Prepare daily sales trend for CSV export"""
    return list(report_data["sales_trend"])


CSV_PREPARERS = {
    "summary": prepare_summary_csv,
    "products": prepare_top_products_csv,
    "customers": prepare_top_customers_csv,
    "expenses": prepare_expense_categories_csv,
    "trend": prepare_sales_trend_csv,
}


# CSV Headers mapping for each report section
CSV_HEADERS = {
    "summary": {
        "date_range": "Period",
        "total_sales": "Total Sales",
        "total_revenue": "Total Revenue",
        "total_profit": "Total Profit",
        "total_expenses": "Total Expenses",
        "net_profit": "Net Profit",
        "profit_margin": "Profit Margin %",
        "average_order_value": "Average Order Value"
    },
    "products": {
        "product_id": "Product ID",
        "name": "Product",
        "quantity": "Quantity Sold",
        "revenue": "Revenue",
        "profit": "Profit"
    },
    "customers": {
        "customer_id": "Customer ID",
        "name": "Customer",
        "sales": "Sales",
        "revenue": "Revenue",
        "profit": "Profit"
    },
    "expenses": {
        "category": "Category",
        "amount": "Amount",
        "count": "Count"
    },
    "trend": {
        "date": "Date",
        "sales": "Sales",
        "revenue": "Revenue",
        "profit": "Profit"
    }
}
