from datetime import datetime, timedelta

from analytics import compute_series, compute_statistics
from filters import filter_and_group
from schemas import FilterCriteria

now = datetime.now()
sample_invoices = [
    {"id": "1", "userId": "demo", "createdAt": now, "totalTTC": 45.67,
     "category": "Grocery", "supplier": "Carrefour Market", "description": "Pain, lait, fromage"},
    {"id": "2", "userId": "demo", "createdAt": now, "totalTTC": 10.00,
     "category": "Grocery", "supplier": "Grand Frais"},
    {"id": "3", "userId": "demo", "createdAt": now - timedelta(days=1), "totalTTC": 23.45,
     "category": "Pharmacy", "supplier": "Pharmacie de la Ville"},
    {"id": "4", "userId": "demo", "createdAt": now - timedelta(days=2), "totalTTC": None},
]

print("statistics:", compute_statistics(sample_invoices).model_dump())
series = compute_series(sample_invoices)
print("daily:", [(p.label, p.amount) for p in series.daily_totals])
print("category:", [(p.name, p.amount, p.color) for p in series.category_totals])
print("trend:", [(p.label, p.amount) for p in series.weekly_trend])

view = filter_and_group(sample_invoices, FilterCriteria(search_text="pharm"))
print("gallery:", view.status, {label: [r.id for r in rs] for label, rs in view.groups.items()})
