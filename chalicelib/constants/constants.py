from decimal import Decimal

PLATFORM_NAME = 'APANDA'

# Roles
ROLE_CUSTOMER = 'customer'
ROLE_SELLER = 'seller'
ROLE_DRIVER = 'driver'
ROLE_PROPERTY_SELLER = 'property_seller'
ROLE_ADMIN = 'admin'
USER_ROLES = (ROLE_CUSTOMER, ROLE_SELLER, ROLE_DRIVER, ROLE_PROPERTY_SELLER, ROLE_ADMIN)

# Orders
ORDER_TYPE_FOOD = 'food'
ORDER_TYPE_MARKETPLACE = 'marketplace'
ORDER_TYPES = (ORDER_TYPE_FOOD, ORDER_TYPE_MARKETPLACE)
DEFAULT_DELIVERY_FEE = Decimal('50')

# Payments
PROVIDER_MPESA = 'mpesa'
PROVIDER_STRIPE = 'stripe'
PROVIDER_WALLET = 'wallet'
PROVIDER_CASH = 'cash'
PAYMENT_PROVIDERS = (PROVIDER_MPESA, PROVIDER_STRIPE, PROVIDER_WALLET, PROVIDER_CASH)
MPESA_TRANSACTION_TYPE = 'CustomerPayBillOnline'
MPESA_TRANSACTION_DESC = f'{PLATFORM_NAME} Payment'
MPESA_SUCCESS_RESPONSE_CODE = '0'
MPESA_SUCCESS_RESULT_CODE = 0
MPESA_DEFAULT_BASE_URL = 'https://sandbox.safaricom.co.ke'
MPESA_DEFAULT_SHORTCODE = '174379'
TRANSACTIONS_PAGE_SIZE = 50

# Rides
VEHICLE_TAXI = 'taxi'
VEHICLE_MOTORBIKE = 'motorbike'
VEHICLE_PICKUP = 'pickup'
VEHICLE_TYPES = (VEHICLE_TAXI, VEHICLE_MOTORBIKE, VEHICLE_PICKUP)
MINIMUM_FARE_RATIO = Decimal('0.75')
DEFAULT_WAITING_CHARGE = Decimal('5')

# Assistant
AI_DEFAULT_MODEL = 'google/gemini-2.5-flash'
AI_FALLBACK_MESSAGE = "I'm here to help!"

# Notifications
NOTIFICATION_ICON = '/icon-192.png'

# Presence
PRESENCE_TTL_SECONDS = 120

# Images
MAIN_IMAGE_NAME = 'main.jpg'
THUMB_IMAGE_NAME = 'thumb.jpg'

# HTTP
DEFAULT_HTTP_TIMEOUT_SECONDS = 30
