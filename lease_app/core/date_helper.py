from datetime import date

from dateutil.relativedelta import relativedelta


def add_months(start_date: date, months: int) -> date:
    # Calendar months; Jan 31 + 1 month lands on the last day of February.
    return start_date + relativedelta(months=months)


def days_between(start: date, end: date) -> int:
    return (end - start).days
