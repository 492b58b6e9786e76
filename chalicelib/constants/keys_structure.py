users_pk = 'users'
users_sk = '{user_id}'

drivers_pk = 'drivers'
drivers_sk = '{driver_id}'

driver_pricing_pk = 'driver_pricing_{driver_id}'
driver_pricing_sk = '{vehicle_type}'

sellers_pk = 'sellers'
sellers_sk = '{seller_id}'

restaurants_pk = 'restaurants'
restaurants_sk = '{restaurant_id}'

menu_items_pk = 'menu_items_{restaurant_id}'
menu_items_sk = '{menu_item_id}'

products_pk = 'products'
products_sk = '{product_id}'

properties_pk = 'properties'
properties_sk = '{property_id}'

orders_pk = 'orders'
orders_sk = '{order_id}'

rides_pk = 'rides'
rides_sk = '{ride_id}'

errands_pk = 'errand_orders'
errands_sk = '{errand_id}'

transactions_pk = 'transactions'
transactions_sk = '{transaction_id}'

payment_requests_pk = 'payment_requests'
payment_requests_sk = '{merchant_request_id}'

chats_pk = 'chats_{conversation_id}'
chats_sk = '{date_created}_{chat_id}'

notifications_pk = 'notifications_{user_id}'
notifications_sk = '{notification_id}'

push_subscriptions_pk = 'push_subscriptions_{user_id}'
push_subscriptions_sk = '{subscription_id}'

presence_pk = 'presence'
presence_sk = '{user_id}'
