ORDER_PENDING = 'pending'
ORDER_CONFIRMED = 'confirmed'
ORDER_SHIPPED = 'shipped'
ORDER_DELIVERED = 'delivered'
ORDER_COMPLETED = 'completed'
ORDER_CANCELLED = 'cancelled'

ORDER_STATUS_TRANSITIONS = {
    ORDER_PENDING: (ORDER_CONFIRMED, ORDER_CANCELLED),
    ORDER_CONFIRMED: (ORDER_SHIPPED, ORDER_CANCELLED),
    ORDER_SHIPPED: (ORDER_DELIVERED,),
    ORDER_DELIVERED: (ORDER_COMPLETED,),
    ORDER_COMPLETED: (),
    ORDER_CANCELLED: ()
}

# an STK push may only be started while the order can still be fulfilled
ORDER_PAYABLE_STATUSES = (ORDER_PENDING, ORDER_CONFIRMED)

RIDE_REQUESTED = 'requested'
RIDE_ACCEPTED = 'accepted'
RIDE_ARRIVED = 'arrived'
RIDE_ONGOING = 'ongoing'
RIDE_COMPLETED = 'completed'
RIDE_CANCELLED = 'cancelled'

RIDE_STATUS_TRANSITIONS = {
    RIDE_REQUESTED: (RIDE_ACCEPTED, RIDE_CANCELLED),
    RIDE_ACCEPTED: (RIDE_ARRIVED, RIDE_ONGOING, RIDE_CANCELLED),
    RIDE_ARRIVED: (RIDE_ONGOING, RIDE_CANCELLED),
    RIDE_ONGOING: (RIDE_COMPLETED,),
    RIDE_COMPLETED: (),
    RIDE_CANCELLED: ()
}

TRANSACTION_PENDING = 'pending'
TRANSACTION_COMPLETED = 'completed'
TRANSACTION_FAILED = 'failed'
TRANSACTION_REFUNDED = 'refunded'
TRANSACTION_STATUSES = (TRANSACTION_PENDING, TRANSACTION_COMPLETED, TRANSACTION_FAILED, TRANSACTION_REFUNDED)

PAYMENT_PENDING = 'pending'
PAYMENT_COMPLETED = 'completed'
PAYMENT_FAILED = 'failed'

KYC_PENDING = 'pending'
KYC_APPROVED = 'approved'
KYC_REJECTED = 'rejected'
KYC_STATUSES = (KYC_PENDING, KYC_APPROVED, KYC_REJECTED)

ERRAND_URGENCY_NORMAL = 'normal'
ERRAND_URGENCY_URGENT = 'urgent'
ERRAND_URGENCY_EXPRESS = 'express'
