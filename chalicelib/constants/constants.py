import os

# Order lifecycle
STATUS_PENDING = 'Pending'
STATUS_PREPARING = 'Preparing'
STATUS_READY = 'Ready'
ORDER_STATUSES = (STATUS_PENDING, STATUS_PREPARING, STATUS_READY)

# Cart
MIN_CART_QTY = 1
MAX_CART_QTY = 5

# Loyalty
POINTS_PER_CURRENCY_UNIT = '1.5'
POINTS_PER_DISCOUNT_STEP = 1000
DISCOUNT_PER_STEP = 10

# Analytics
TIMEFRAMES = ('daily', 'weekly', 'monthly')

# Users
ROLE_USER = 'user'
ROLE_ADMIN = 'admin'
USER_ROLES = (ROLE_USER, ROLE_ADMIN)

# Inquiries
INQUIRY_PENDING = 'pending'
INQUIRY_RESPONDED = 'responded'

# Images
MAIN_IMAGE_NAME = 'main.jpg'
THUMB_IMAGE_NAME = 'thumb.jpg'

CLIENT_ID_HEADER = 'x-client-id'
LOGIN_ROUTE = '/login'

EMAIL_FROM = os.environ.get('EMAIL_FROM', 'orders@thuldaikhajaghar.com.au')
