"""
Скрипт инициализации базы данных
Создаёт таблицы и добавляет демо-магазин

Запуск из каталога backend: python init_db.py
"""
import logging

from groombook.database import SessionLocal, init_db
from groombook.seed import seed_demo_shop


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    init_db()
    db = SessionLocal()
    try:
        shop = seed_demo_shop(db)
    finally:
        db.close()

    print(f"Инициализация завершена! Страница записи: /api/shops/{shop.slug}")
    print("Теперь можно запустить сервер: uvicorn groombook.main:app --reload")


if __name__ == "__main__":
    main()
