"""CSV rendering of hospital records for GET /hospitals/export."""
import csv
import io

from hospitofind.data.hospitals_repo import HospitalRecord

CSV_COLUMNS = (
    "name", "street", "city", "state", "phone", "website", "email",
    "photo_url", "type", "services", "comments", "hours",
)


def _row(h: HospitalRecord) -> dict[str, str]:
    return {
        "name": h.name,
        "street": h.street,
        "city": h.city,
        "state": h.state,
        "phone": h.phone_number or "",
        "website": h.website or "",
        "email": h.email or "",
        "photo_url": h.photo_url or "",
        "type": h.type or "",
        "services": ", ".join(h.services),
        "comments": ", ".join(h.comments),
        "hours": ", ".join(f"{hr.get('day', '')}: {hr.get('open', '')}" for hr in h.hours),
    }


def hospitals_to_csv(hospitals: list[HospitalRecord]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for h in hospitals:
        writer.writerow(_row(h))
    return buf.getvalue()
