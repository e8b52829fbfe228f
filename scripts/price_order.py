from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from pydantic import ValidationError

from services.api.app.models.order import PricingPreviewRequest
from services.api.app.services.order_editor import pricing_to_schema
from services.api.app.services.pricing import PaymentConfig, price_order


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Price a purchase order described in a JSON file (same body as /v1/pricing/preview)"
    )
    parser.add_argument("order_file", type=Path, help="JSON file with items, adjustments and payment")
    parser.add_argument(
        "--order-date",
        type=date.fromisoformat,
        default=None,
        help="Reference date for installment due dates (YYYY-MM-DD). Defaults to the file's "
        "order_date, then today.",
    )
    parser.add_argument("--indent", type=int, default=2)
    args = parser.parse_args(argv)

    try:
        raw = json.loads(args.order_file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"Could not read {args.order_file}: {e}", file=sys.stderr)
        return 2

    try:
        request = PricingPreviewRequest.model_validate(raw)
    except ValidationError as e:
        print(f"Invalid order in {args.order_file}:\n{e}", file=sys.stderr)
        return 2

    pricing = price_order(
        items=[item.model_dump() for item in request.items],
        adjustments=request.adjustments.model_dump(),
        payment=PaymentConfig(
            method=request.payment.method,
            type=request.payment.type,
            installment_schedule=request.payment.installment_schedule,
        ),
        order_date=args.order_date or request.order_date or date.today(),
    )

    print(pricing_to_schema(pricing).model_dump_json(indent=args.indent))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
