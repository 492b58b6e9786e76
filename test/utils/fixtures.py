from decimal import Decimal

import pytest
from chalice.test import Client

from chalicelib.constants import keys_structure
from chalicelib.utils import db
from utils.fake_db import FakeTable
from utils.request_utils import make_token

id_admin = '13303309-d941-486f-b600-3e90929ac50f'
id_seller = '8178f948-cdc2-4e8c-b013-07a956e7e72a'
id_customer = 'e5b01491-e538-4be3-8d3c-a57db7fc43c1'
id_driver = '5a0cb4b8-5d0f-4d0e-9a57-0a0a7a0b2f11'
id_other_driver = 'b7d1f6a3-0c3e-4b8e-8a8f-4b9e0d7d2c22'
id_property_seller = 'c3e2a1d0-7f6b-4e5d-9c8b-1a2b3c4d5e6f'
id_unregistered = 'f0e1d2c3-b4a5-4968-8776-655443322110'

users_by_role = {
    'admin': id_admin,
    'seller': id_seller,
    'customer': id_customer,
    'driver': id_driver,
    'property_seller': id_property_seller
}


def seed_user(table: FakeTable, user_id: str, role: str, phone: str = '254712345678', **kwargs):
    table.put(
        partkey=keys_structure.users_pk,
        sortkey=keys_structure.users_sk.format(user_id=user_id),
        record_type='user',
        id_=user_id,
        role=role,
        full_name=kwargs.get('full_name', f'Test {role}'),
        phone=phone,
        email=kwargs.get('email', f'{role}@apanda.test'),
        kyc_status='approved',
        date_created='2024-01-01T10:00:00',
        date_updated='2024-01-01T10:00:00'
    )


def seed_seller(table: FakeTable, seller_id: str = id_seller, is_verified: bool = True):
    table.put(
        partkey=keys_structure.sellers_pk,
        sortkey=keys_structure.sellers_sk.format(seller_id=seller_id),
        record_type='seller',
        id_=seller_id,
        user_id=seller_id,
        shop_name='Kerugoya Fresh',
        shop_description='Fresh produce',
        is_verified=is_verified,
        date_created='2024-01-01T10:00:00',
        date_updated='2024-01-01T10:00:00'
    )


def seed_driver(table: FakeTable, driver_id: str = id_driver, is_verified: bool = True, is_online: bool = True,
                vehicle_type: str = 'taxi'):
    table.put(
        partkey=keys_structure.drivers_pk,
        sortkey=keys_structure.drivers_sk.format(driver_id=driver_id),
        record_type='driver',
        id_=driver_id,
        user_id=driver_id,
        vehicle_type=vehicle_type,
        vehicle_model='Toyota Probox',
        vehicle_number='KDA 123A',
        license_number='DL-0001',
        is_online=is_online,
        is_verified=is_verified,
        date_created='2024-01-01T10:00:00',
        date_updated='2024-01-01T10:00:00'
    )


@pytest.fixture
def gen_table() -> FakeTable:
    table = FakeTable()
    db._DB = table
    yield table
    db._DB = None


@pytest.fixture
def registered_users(gen_table) -> FakeTable:
    for role, user_id in users_by_role.items():
        seed_user(gen_table, user_id, role)
    seed_user(gen_table, id_other_driver, 'driver', phone='254798765432')
    return gen_table


@pytest.fixture
def tokens() -> dict:
    return {
        **{role: make_token(user_id) for role, user_id in users_by_role.items()},
        'other_driver': make_token(id_other_driver),
        'unregistered': make_token(id_unregistered)
    }


@pytest.fixture
def chalice_client():
    from app import app
    with Client(app, stage_name='test') as client:
        yield client


def seed_restaurant(table: FakeTable, restaurant_id: str = 'rest-1', seller_id: str = id_seller,
                    delivery_fee=Decimal('100.00'), is_active: bool = True):
    table.put(
        partkey=keys_structure.restaurants_pk,
        sortkey=keys_structure.restaurants_sk.format(restaurant_id=restaurant_id),
        record_type='restaurant',
        id_=restaurant_id,
        seller_id=seller_id,
        name_='Kerugoya Bites',
        cuisine_type='kenyan',
        delivery_fee=delivery_fee,
        is_active=is_active,
        date_created='2024-01-01T10:00:00',
        date_updated='2024-01-01T10:00:00'
    )
    return restaurant_id


def seed_menu_item(table: FakeTable, menu_item_id: str, restaurant_id: str = 'rest-1', price=Decimal('250.00'),
                   is_available: bool = True, archived: bool = False, name: str = 'Nyama Choma'):
    table.put(
        partkey=keys_structure.menu_items_pk.format(restaurant_id=restaurant_id),
        sortkey=keys_structure.menu_items_sk.format(menu_item_id=menu_item_id),
        record_type='menu_item',
        id_=menu_item_id,
        restaurant_id=restaurant_id,
        name_=name,
        price=price,
        is_available=is_available,
        archived=archived,
        date_created='2024-01-01T10:00:00',
        date_updated='2024-01-01T10:00:00'
    )
    return menu_item_id


def seed_product(table: FakeTable, product_id: str, seller_id: str = id_seller, price=Decimal('1200.00'),
                 stock_quantity=Decimal('5'), is_active: bool = True, name: str = 'Kiondo Basket'):
    table.put(
        partkey=keys_structure.products_pk,
        sortkey=keys_structure.products_sk.format(product_id=product_id),
        record_type='product',
        id_=product_id,
        seller_id=seller_id,
        name_=name,
        category='crafts',
        price=price,
        stock_quantity=stock_quantity,
        is_active=is_active,
        date_created='2024-01-01T10:00:00',
        date_updated='2024-01-01T10:00:00'
    )
    return product_id


def seed_ride(table: FakeTable, ride_id: str = 'ride-1', customer_id: str = id_customer,
              driver_id: str = id_driver, status: str = 'accepted'):
    record = dict(
        partkey=keys_structure.rides_pk,
        sortkey=keys_structure.rides_sk.format(ride_id=ride_id),
        record_type='ride',
        id_=ride_id,
        customer_id=customer_id,
        vehicle_type='taxi',
        pickup_address='Kerugoya stage',
        dropoff_address='Kutus market',
        fare=Decimal('450.00'),
        status_=status,
        date_created='2024-01-01T10:00:00',
        date_updated='2024-01-01T10:00:00'
    )
    if driver_id:
        record['driver_id'] = driver_id
    table.put(**record)
    return ride_id
