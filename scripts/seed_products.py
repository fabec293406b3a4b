"""
Cadastro inicial de produtos da distribuidora (gás, água, coco, refrigerante).
Atualiza pelo nome os produtos que já existirem. Cuidado ao rodar em produção.
"""
import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from config.database import init_db, new_session
from models.product import Product

BASE_PRODUCTS = [
    dict(name="Gás P13", category="Gás", price_cost=85.0, price_sell=110.0, stock_quantity=30, stock_min=8),
    dict(name="Gás P45", category="Gás", price_cost=320.0, price_sell=390.0, stock_quantity=6, stock_min=2),
    dict(name="Água Indaiá 20L", category="Água 20L", price_cost=7.0, price_sell=13.0, stock_quantity=60, stock_min=15),
    dict(name="Água Gamboa 20L", category="Água 20L", price_cost=6.5, price_sell=12.0, stock_quantity=40, stock_min=10),
    dict(name="Água Maiorca 20L", category="Água 20L", price_cost=6.0, price_sell=11.0, stock_quantity=40, stock_min=10),
    dict(name="Água Jordão 20L", category="Água 20L", price_cost=6.0, price_sell=11.0, stock_quantity=25, stock_min=10),
    dict(name="Água Mineral 500ml", category="Água 20L", price_cost=0.9, price_sell=2.5, stock_quantity=48, stock_min=12),
    dict(name="Água de Coco 1L", category="Água de coco", price_cost=5.0, price_sell=9.0, stock_quantity=24, stock_min=6),
    dict(name="Coca-Cola 2L", category="Refrigerante", price_cost=7.5, price_sell=12.0, stock_quantity=36, stock_min=12),
    dict(name="Guaraná Antarctica 2L", category="Refrigerante", price_cost=5.5, price_sell=9.0, stock_quantity=36, stock_min=12),
]


def main() -> None:
    init_db()
    db = new_session()
    try:
        created, updated = 0, 0
        for data in BASE_PRODUCTS:
            prod = db.query(Product).filter(Product.name == data["name"]).first()
            if prod:
                for field, value in data.items():
                    setattr(prod, field, value)
                updated += 1
            else:
                db.add(Product(is_active=True, **data))
                created += 1

        db.commit()
        print(f"Produtos criados: {created}, atualizados: {updated}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
