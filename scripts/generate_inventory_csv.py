"""
Sample Inventory Feed Generator
Writes a semicolon-separated inventory export shaped like the supplier ERP feed
"""

import argparse
import random
from pathlib import Path

import polars as pl
from faker import Faker

fake = Faker("da_DK")
random.seed(42)
Faker.seed(42)

OUTPUT_DIR = Path(__file__).parent.parent / "data" / "generated"

SIZE_RUNS = [
    ["XS", "S", "M", "L", "XL"],
    ["36", "38", "40", "42", "44"],
    ["ONE SIZE"],
]
COLORS = ["Black", "Navy", "Sand", "Forest", "Bordeaux", "Off White", "Grey Melange"]
CATEGORIES = ["Shirts", "Knitwear", "Trousers", "Dresses", "Outerwear", "Accessories"]
SEASONS = ["ES 25", "WI 24", "SS 24", "NOOS"]
STATUSES = ["Aktiv", "Udgået", "Ny"]
QUALITIES = ["100% Cotton", "100% Wool", "Linen Blend", "Recycled Polyester"]


def generate_feed(n_products: int = 200) -> pl.DataFrame:
    print(f"📊 Generating {n_products:,} products...")

    suppliers = [fake.company() for _ in range(max(3, n_products // 20))]
    rows = []
    sku = 100000

    for i in range(n_products):
        item_number = f"{10000 + i}"
        product_name = f"{fake.word().title()} {random.choice(CATEGORIES)[:-1]}"
        supplier = random.choice(suppliers)
        category = random.choice(CATEGORIES)
        season = random.choice(SEASONS)
        status = random.choice(STATUSES)
        cost = round(random.uniform(40, 600), 2)
        retail = round(cost * random.uniform(2.0, 3.2), 0)
        inactive = "X" if random.random() < 0.05 else ""

        for color in random.sample(COLORS, k=random.randint(1, 3)):
            week = str(random.randint(1, 52))
            for size in random.choice(SIZE_RUNS):
                sku += 1
                rows.append({
                    "Item number": item_number,
                    "Size": size,
                    "Color": color,
                    "Brand": supplier.split()[0],
                    "Product name": product_name,
                    "Category": category,
                    "Cost price": f"{cost:.2f}",
                    "Rec Retail": f"{retail:.2f}",
                    "EAN": fake.ean13(),
                    "Stock": str(random.randint(0, 40)),
                    "SKU": str(sku),
                    "Quality": random.choice(QUALITIES),
                    "Season": season,
                    "Sold": str(random.randint(0, 25)),
                    "In Purchase": str(random.choice([0, 0, 0, 6, 12, 24])),
                    "Leveringsuge": week,
                    "Leverandør": supplier,
                    "Salgspris": f"{retail:.2f}",
                    "Vejl. udsalgspris": f"{retail:.2f}",
                    "Varestatus": status,
                    "Inaktiv": inactive,
                })

    return pl.DataFrame(rows)


def main():
    parser = argparse.ArgumentParser(description="Generate a sample inventory feed")
    parser.add_argument("--products", type=int, default=200, help="Number of products")
    parser.add_argument("--output", type=Path, default=OUTPUT_DIR / "Inventory.csv", help="Output CSV path")
    args = parser.parse_args()

    df = generate_feed(args.products)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    df.write_csv(args.output, separator=";")
    print(f"   ✅ {args.output.name}: {len(df):,} rows")


if __name__ == "__main__":
    main()
