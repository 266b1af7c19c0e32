from django.urls import path, include
from rest_framework.routers import SimpleRouter
from . import views

app_name = 'billing'

router = SimpleRouter()
router.register(r'', views.BillViewSet, basename='bill')

urlpatterns = [
    # GET    /api/bills/                 - List bills (filterable)
    # POST   /api/bills/                 - Finalize a bill
    # GET    /api/bills/{id}/            - Bill details
    # POST   /api/bills/{id}/payments/   - Apply a payment
    # POST   /api/bills/{id}/cancel/     - Cancel an unpaid bill
    # POST   /api/bills/{id}/refund/     - Refund line items
    path('', include(router.urls)),
]
