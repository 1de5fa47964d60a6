"""
Storefront - Database Seeder
==============================
Seeds the catalog with sample clothing and a demo shopper account.

Usage:
    python scripts/seed.py          # Seed (skips rows that already exist)
    python scripts/seed.py --reset  # Drop all data and reseed

Seeded:
  1. Demo user (demo@example.com / demo1234)
  2. Products for Men, Women and Kids with their sizes and stock
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import SessionLocal, Base, engine
from common.security import hash_password
from modules.user.models import User
from modules.catalog.models import Product, ProductSize  # noqa: F401
from modules.cart.models import Cart, CartItem  # noqa: F401
from modules.order.models import Order, OrderItem  # noqa: F401
from modules.catalog.service import product_service

ALL = ["S", "M", "L", "XL"]

PRODUCTS = [
    # Men
    ("Classic Cotton T-Shirt", "Comfortable and breathable cotton T-shirt, perfect for everyday wear.", "20.00", "Men", ALL, 50, "tshirt,men"),
    ("Slim Fit Denim Jeans", "Premium denim jeans with a modern slim fit.", "45.00", "Men", ["M", "L", "XL"], 30, "jeans,men"),
    ("Casual Polo Shirt", "Classic polo shirt made from high-quality cotton blend.", "25.00", "Men", ALL, 40, "polo,shirt"),
    ("Hooded Sweatshirt", "Warm and cozy hooded sweatshirt with front pocket.", "35.00", "Men", ALL, 25, "hoodie,men"),
    ("Cargo Shorts", "Functional cargo shorts with multiple pockets.", "28.00", "Men", ["M", "L", "XL"], 35, "shorts,men"),
    ("Formal Dress Shirt", "Crisp white dress shirt for business and formal events.", "32.00", "Men", ALL, 20, "dress,shirt,men"),
    ("Athletic Joggers", "Comfortable joggers with elastic waistband.", "30.00", "Men", ALL, 45, "joggers,men"),
    ("Leather Jacket", "Genuine leather jacket with classic design.", "85.00", "Men", ["M", "L", "XL"], 15, "leather,jacket,men"),
    # Women
    ("Summer Floral Dress", "Floral print dress in a lightweight, comfortable fabric.", "35.00", "Women", ["S", "M", "L"], 40, "dress,women"),
    ("Warm Winter Hoodie", "Cozy hoodie with soft fleece lining.", "30.00", "Women", ALL, 30, "hoodie,women"),
    ("Skinny Fit Jeans", "Skinny fit jeans with stretch fabric.", "42.00", "Women", ["S", "M", "L"], 35, "jeans,women"),
    ("Elegant Blouse", "Blouse with delicate details for office or evening wear.", "28.00", "Women", ["S", "M", "L"], 25, "blouse"),
    ("Casual T-Shirt", "Women's T-shirt in a soft cotton blend.", "18.00", "Women", ALL, 50, "tshirt,women"),
    ("Maxi Skirt", "Flowing maxi skirt for casual or semi-formal occasions.", "32.00", "Women", ["S", "M", "L"], 28, "skirt"),
    ("Yoga Leggings", "High-waisted leggings with moisture-wicking fabric.", "25.00", "Women", ALL, 42, "leggings"),
    ("Denim Jacket", "Classic denim jacket with a modern fit.", "40.00", "Women", ["S", "M", "L"], 22, "denim,jacket"),
    ("Cardigan Sweater", "Soft cardigan sweater for layering.", "38.00", "Women", ALL, 30, "cardigan"),
    ("High-Waisted Shorts", "High-waisted shorts with a comfortable fit.", "22.00", "Women", ["S", "M", "L"], 38, "shorts,women"),
    # Kids
    ("Kids Cotton T-Shirt", "Kids T-shirt with fun designs in child-friendly fabric.", "15.00", "Kids", ["S", "M"], 60, "kids,tshirt"),
    ("Children's Jeans", "Durable jeans with reinforced knees.", "28.00", "Kids", ["S", "M"], 45, "kids,jeans"),
    ("Kids Hoodie", "Warm and cozy hoodie for children.", "25.00", "Kids", ["S", "M"], 40, "kids,hoodie"),
    ("Children's Dress", "Dress in a comfortable fabric for play or special occasions.", "30.00", "Kids", ["S", "M"], 35, "kids,dress"),
    ("Kids Shorts", "Shorts with an elastic waistband for easy wear.", "18.00", "Kids", ["S", "M"], 50, "kids,shorts"),
    ("Children's Sweater", "Warm sweater in a soft fabric.", "22.00", "Kids", ["S", "M"], 38, "kids,sweater"),
]


def seed_users(db):
    print("\n[1/2] Demo user")
    email = "demo@example.com"
    if db.query(User).filter(User.email == email).first():
        print(f"  - {email} already exists, skipped")
        return
    db.add(User(name="Demo Shopper", email=email, password_hash=hash_password("demo1234")))
    db.flush()
    print(f"  + {email} (password: demo1234)")


def seed_products(db):
    print("\n[2/2] Products")
    created = 0
    for name, description, price, category, sizes, stock, image_query in PRODUCTS:
        if db.query(Product.id).filter(Product.name == name).first():
            continue
        product_service.create(db, {
            "name": name,
            "description": description,
            "price": price,
            "category": category,
            "sizes": sizes,
            "stock": stock,
            "image_url": f"https://source.unsplash.com/400x400/?{image_query}",
        })
        created += 1
    print(f"  + {created} products created ({len(PRODUCTS) - created} already present)")


def run_seed(reset=False):
    if reset:
        print("Dropping all tables...")
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        seed_users(db)
        seed_products(db)
        db.commit()
        print("\nSeeding completed successfully!")
    except Exception as e:
        db.rollback()
        print(f"\n[ERROR] Seeding failed: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    run_seed(reset="--reset" in sys.argv)
