import os

from chalice import Chalice, Response

from chalicelib import auth, admin, asset_cache, assistant, chats, drivers, errands, images, menu_items, mpesa, \
    notifications, orders, presence, pricing, products, properties, restaurants, rides, sellers, transactions, \
    triggers, users
from chalicelib.constants.status_codes import http200
from chalicelib.utils import data as utils_data
from chalicelib.utils.app import request_exception_handler

app = Chalice(app_name='apanda')

app.api.binary_types.insert(0, 'multipart/form-data')
app.debug = os.environ.get('CHALICE_DEBUG', 'false').lower() == 'true'


def get_gen_table_stream_arn():
    return os.environ["GEN_TABLE_STREAM_ARN"]


@app.authorizer()
def role_authorizer(auth_request):
    return auth.role_authorizer(auth_request)


@app.on_dynamodb_record(stream_arn=get_gen_table_stream_arn())
def db_gen_table_stream_trigger(event):
    return triggers.db_gen_table_stream_trigger(event)


@app.route('/health-check', methods=['GET'], cors=True)
def health_check():
    return Response(status_code=http200, body={'status': 'ok'})


# USERS
@app.route('/users', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_user():
    return users.User.init_request_user(app.current_request).endpoint_get_user()


@app.route('/users', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def create_user():
    return users.User.init_request_create(app.current_request).endpoint_create_user()


@app.route('/users', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_user():
    return users.User.init_request_update(app.current_request).endpoint_update_user()


@app.route('/users/all', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_all_users():
    """
    admin operation
    """
    return users.User.endpoint_get_users(app.current_request)


@app.route('/users/{user_id}/kyc', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_user_kyc(user_id):
    """
    admin operation
    """
    return users.User.init_request_kyc_update(app.current_request, user_id).endpoint_update_user()


# DRIVERS
@app.route('/drivers', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def driver_onboarding():
    return drivers.Driver.init_request_onboarding(app.current_request).endpoint_onboarding()


@app.route('/drivers', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_drivers():
    """
    admin operation
    """
    return drivers.Driver.endpoint_get_all(app.current_request)


@app.route('/drivers/online', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_online_drivers():
    return drivers.Driver.endpoint_get_online(app.current_request)


@app.route('/drivers/me', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_own_driver_profile():
    return drivers.Driver.init_request_own(app.current_request).endpoint_get()


@app.route('/drivers/me', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_own_driver_profile():
    request_body = utils_data.parse_raw_body(app.current_request)
    return drivers.Driver.init_request_own(app.current_request).endpoint_update_profile(request_body)


@app.route('/drivers/me/online', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def set_driver_online():
    is_online = utils_data.parse_raw_body(app.current_request).get('is_online')
    return drivers.Driver.init_request_own(app.current_request).endpoint_set_online(is_online)


@app.route('/drivers/me/location', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_driver_location():
    request_body = utils_data.parse_raw_body(app.current_request)
    return drivers.Driver.init_request_own(app.current_request).\
        endpoint_update_location(request_body.get('latitude'), request_body.get('longitude'))


@app.route('/drivers/me/pricing', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_driver_pricing():
    return pricing.DriverPricing.endpoint_get_own_pricing(app.current_request)


@app.route('/drivers/me/pricing/{vehicle_type}', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def upsert_driver_pricing(vehicle_type):
    return pricing.DriverPricing.init_request_upsert(app.current_request, vehicle_type).endpoint_upsert()


@app.route('/drivers/{driver_id}/verification', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_driver_verification(driver_id):
    """
    admin operation
    """
    return drivers.Driver.init_request_verification(app.current_request, driver_id).endpoint_update_verification()


# SELLERS
@app.route('/sellers', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def seller_onboarding():
    return sellers.Seller.init_request_onboarding(app.current_request).endpoint_onboarding()


@app.route('/sellers', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_sellers():
    """
    admin operation
    """
    return sellers.Seller.endpoint_get_all(app.current_request)


@app.route('/sellers/me', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_own_seller_profile():
    return sellers.Seller.init_request_own(app.current_request).endpoint_get()


@app.route('/sellers/{seller_id}/verification', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_seller_verification(seller_id):
    """
    admin operation
    """
    return sellers.Seller.init_request_verification(app.current_request, seller_id).endpoint_update_verification()


# RESTAURANTS
@app.route('/restaurants', methods=['GET'], cors=True)
@request_exception_handler
def get_restaurants():
    return restaurants.Restaurant.endpoint_get_all(app.current_request)


@app.route('/restaurants/mine', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_own_restaurants():
    return restaurants.Restaurant.endpoint_get_own(app.current_request)


@app.route('/restaurants/{restaurant_id}', methods=['GET'], cors=True)
@request_exception_handler
def get_restaurant_by_id(restaurant_id):
    return restaurants.Restaurant.init_get_by_id(restaurant_id).endpoint_get_by_id()


@app.route('/restaurants', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def create_restaurant():
    """
    seller operation
    """
    return restaurants.Restaurant.init_request_create(app.current_request).endpoint_create()


@app.route('/restaurants/{restaurant_id}', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_restaurant(restaurant_id):
    """
    owner or admin operation
    """
    return restaurants.Restaurant.init_request_update(app.current_request, restaurant_id).endpoint_update()


@app.route('/restaurants/{restaurant_id}', methods=['DELETE'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def deactivate_restaurant(restaurant_id):
    """
    owner or admin operation
    """
    return restaurants.Restaurant.init_request_update(
        app.current_request, restaurant_id, special_body={'is_active': False}
    ).endpoint_update()


# MENU ITEMS
@app.route('/menu-items/{restaurant_id}', methods=['GET'], cors=True)
@request_exception_handler
def get_restaurant_menu(restaurant_id):
    return menu_items.MenuItem.endpoint_get_menu_items(app.current_request, restaurant_id=restaurant_id)


@app.route('/menu-items/{restaurant_id}', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def create_menu_item(restaurant_id):
    """
    restaurant owner operation
    """
    return menu_items.MenuItem.init_request_create(app.current_request, restaurant_id).endpoint_create_menu_item()


@app.route('/menu-items/{restaurant_id}/{menu_item_id}', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_menu_item(restaurant_id, menu_item_id):
    """
    restaurant owner operation
    """
    return menu_items.MenuItem.init_request_update(app.current_request, restaurant_id, menu_item_id).\
        endpoint_update_menu_item()


@app.route('/menu-items/{restaurant_id}/{menu_item_id}', methods=['DELETE'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def delete_menu_item(restaurant_id, menu_item_id):
    """
    restaurant owner operation
    """
    return menu_items.MenuItem.init_request_update(
        app.current_request, restaurant_id, menu_item_id, special_body={'archived': True}
    ).endpoint_update_menu_item()


# PRODUCTS
@app.route('/products', methods=['GET'], cors=True)
@request_exception_handler
def get_products():
    return products.Product.endpoint_get_all(app.current_request)


@app.route('/products/{product_id}', methods=['GET'], cors=True)
@request_exception_handler
def get_product_by_id(product_id):
    return products.Product.init_get_by_id(product_id).endpoint_get_by_id()


@app.route('/products', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def create_product():
    """
    seller operation
    """
    return products.Product.init_request_create(app.current_request).endpoint_create()


@app.route('/products/{product_id}', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_product(product_id):
    return products.Product.init_request_update(app.current_request, product_id).endpoint_update()


@app.route('/products/{product_id}', methods=['DELETE'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def deactivate_product(product_id):
    return products.Product.init_request_update(
        app.current_request, product_id, special_body={'is_active': False}
    ).endpoint_update()


# PROPERTIES
@app.route('/properties', methods=['GET'], cors=True)
@request_exception_handler
def get_properties():
    return properties.Property.endpoint_get_all(app.current_request)


@app.route('/properties/{property_id}', methods=['GET'], cors=True)
@request_exception_handler
def get_property_by_id(property_id):
    return properties.Property.init_get_by_id(property_id).endpoint_get_by_id()


@app.route('/properties', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def create_property():
    """
    property seller operation
    """
    return properties.Property.init_request_create(app.current_request).endpoint_create()


@app.route('/properties/{property_id}', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_property(property_id):
    return properties.Property.init_request_update(app.current_request, property_id).endpoint_update()


@app.route('/properties/{property_id}', methods=['DELETE'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def deactivate_property(property_id):
    return properties.Property.init_request_update(
        app.current_request, property_id, special_body={'is_active': False}
    ).endpoint_update()


# ORDERS
@app.route('/orders', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_orders():
    """
    customer gets own orders, seller gets orders of own shop,
    driver gets assigned and unassigned confirmed orders, admin gets all orders
    """
    return orders.endpoint_get_orders(app.current_request)


@app.route('/orders', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def create_order():
    return orders.Order.init_request_create(app.current_request).endpoint_create_order()


@app.route('/orders/{order_id}', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_order_by_id(order_id):
    return orders.Order.init_request_get(app.current_request, order_id).endpoint_get_by_id()


@app.route('/orders/{order_id}/status', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_order_status(order_id):
    return orders.Order.init_request_status_update(app.current_request, order_id).endpoint_update_status()


@app.route('/orders/{order_id}/pay', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def pay_order(order_id):
    """
    customer operation, starts an M-Pesa STK push for the order total
    """
    return orders.Order.init_request_pay(app.current_request, order_id).endpoint_pay()


# RIDES
@app.route('/rides', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_rides():
    return rides.endpoint_get_rides(app.current_request)


@app.route('/rides', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def create_ride():
    return rides.Ride.init_request_create(app.current_request).endpoint_create()


@app.route('/rides/{ride_id}', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_ride_by_id(ride_id):
    return rides.Ride.init_request_get(app.current_request, ride_id).endpoint_get_by_id()


@app.route('/rides/{ride_id}/status', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def update_ride_status(ride_id):
    return rides.Ride.init_request_status_update(app.current_request, ride_id).endpoint_update_status()


# PRICING
@app.route('/pricing/vehicle-types', methods=['GET'], cors=True)
def get_vehicle_types():
    return pricing.endpoint_vehicle_types()


@app.route('/pricing/fare-preview', methods=['POST'], cors=True)
def get_fare_preview():
    return pricing.endpoint_fare_preview(app.current_request)


@app.route('/pricing/errand-services', methods=['GET'], cors=True)
def get_errand_services():
    return pricing.endpoint_errand_services()


@app.route('/pricing/errand-price', methods=['POST'], cors=True)
def get_errand_price():
    return pricing.endpoint_errand_price(app.current_request)


# ERRANDS
@app.route('/errands', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_errands():
    return errands.endpoint_get_errands(app.current_request)


@app.route('/errands', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def create_errand():
    return errands.ErrandOrder.init_request_create(app.current_request).endpoint_create()


# TRANSACTIONS
@app.route('/transactions', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_own_transactions():
    return transactions.endpoint_get_own_transactions(app.current_request)


@app.route('/transactions/stats', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_transaction_stats():
    return transactions.endpoint_get_transaction_stats(app.current_request)


@app.route('/transactions/all', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_all_transactions():
    """
    admin operation
    """
    return transactions.endpoint_get_all_transactions(app.current_request)


# CHATS
@app.route('/chats', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_conversation():
    return chats.endpoint_get_conversation(app.current_request)


@app.route('/chats', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def send_chat_message():
    return chats.ChatMessage.init_request_send(app.current_request).endpoint_send()


# NOTIFICATIONS
@app.route('/notifications', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_notifications():
    return notifications.endpoint_get_notifications(app.current_request)


@app.route('/notifications', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def create_notification():
    """
    admin operation
    """
    return notifications.Notification.init_request_create(app.current_request).endpoint_create()


@app.route('/notifications/{notification_id}/read', methods=['PUT'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def mark_notification_read(notification_id):
    return notifications.Notification.init_request_mark_read(app.current_request, notification_id).\
        endpoint_mark_read()


@app.route('/push-subscriptions', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def subscribe_push_notifications():
    return notifications.PushSubscription.init_request_subscribe(app.current_request).endpoint_subscribe()


@app.route('/push-subscriptions/public-key', methods=['GET'], cors=True)
def get_vapid_public_key():
    return notifications.endpoint_vapid_public_key()


# PRESENCE
@app.route('/presence', methods=['POST'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def track_presence():
    return presence.endpoint_track_presence(app.current_request)


@app.route('/presence', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_presence_state():
    return presence.endpoint_presence_state(app.current_request)


# ADMIN
@app.route('/admin/stats', methods=['GET'], authorizer=role_authorizer, cors=True)
@request_exception_handler
def get_dashboard_stats():
    return admin.endpoint_get_dashboard_stats(app.current_request)


# M-PESA
@app.route('/mpesa-webhook', methods=['GET'], cors=True)
def initiate_mpesa_payment():
    """
    Starts an STK push, called by the web app with phone, amount and order_id query params
    """
    return mpesa.endpoint_initiate_payment(app.current_request)


@app.route('/mpesa-webhook', methods=['POST'], cors=True)
def mpesa_payment_callback():
    """
    Safaricom calls it with the result of the STK push
    """
    return mpesa.endpoint_payment_callback(app.current_request)


# AI ASSISTANT
@app.route('/ai-assistant', methods=['POST'], cors=True)
def ai_assistant():
    return assistant.endpoint_ai_assistant(app.current_request)


# STATIC ASSETS
@app.route('/static-assets/{name}', methods=['GET'], cors=True)
@request_exception_handler
def get_static_asset(name):
    return asset_cache.endpoint_static_asset(name)


# IMAGES
@app.route('/image-upload', methods=['POST'], content_types=['multipart/form-data'],
           authorizer=role_authorizer, cors=True)
def image_upload():
    """
    owner or admin operation for restaurant, menu_item, product and property images
    """
    return images.image_upload(app.current_request)
