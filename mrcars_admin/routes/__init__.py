from mrcars_admin.auth_mw import bp_session, guard
from mrcars_admin.routes.analytics import bp_analytics
from mrcars_admin.routes.appointments import bp_appointments
from mrcars_admin.routes.emergency import bp_emergency
from mrcars_admin.routes.forum import bp_forum
from mrcars_admin.routes.inquiries import bp_inquiries
from mrcars_admin.routes.listings import bp_listings
from mrcars_admin.routes.messages import bp_messages
from mrcars_admin.routes.notifications import bp_notifications
from mrcars_admin.routes.orders import bp_orders
from mrcars_admin.routes.overview import bp_overview
from mrcars_admin.routes.payment_verification import bp_payment_verification
from mrcars_admin.routes.payments import bp_payments
from mrcars_admin.routes.products import bp_products
from mrcars_admin.routes.providers import bp_providers
from mrcars_admin.routes.rentals import bp_rentals
from mrcars_admin.routes.security import bp_security
from mrcars_admin.routes.settings import bp_settings
from mrcars_admin.routes.subscriptions import bp_subscriptions
from mrcars_admin.routes.users import bp_users

PAGE_BLUEPRINTS = [
    bp_overview,
    bp_listings,
    bp_rentals,
    bp_products,
    bp_users,
    bp_orders,
    bp_inquiries,
    bp_appointments,
    bp_emergency,
    bp_messages,
    bp_payment_verification,
    bp_payments,
    bp_subscriptions,
    bp_security,
    bp_forum,
    bp_providers,
    bp_notifications,
    bp_analytics,
    bp_settings,
]

# sidebar: (endpoint, label)
NAV = [
    ("overview.index", "Dashboard"),
    ("listings.index", "Car Listings"),
    ("rentals.index", "Rentals"),
    ("products.index", "Parts Shop"),
    ("users.index", "Users"),
    ("orders.index", "Orders"),
    ("inquiries.index", "Inquiries"),
    ("appointments.index", "Appointments"),
    ("emergency.index", "Emergency"),
    ("messages.index", "Messages"),
    ("payment_verification.index", "Payment Verification"),
    ("payments.index", "Payments"),
    ("subscriptions.index", "Subscriptions"),
    ("security.index", "Security"),
    ("forum.index", "Forum"),
    ("providers.index", "Service Providers"),
    ("notifications.index", "Notifications"),
    ("analytics.index", "Analytics"),
    ("settings.index", "Settings"),
]


# blueprints can't take new hooks once registered, so guard them at import
for _bp in PAGE_BLUEPRINTS:
    guard(_bp)


def register_blueprints(app):
    app.register_blueprint(bp_session)
    for bp in PAGE_BLUEPRINTS:
        app.register_blueprint(bp)
