import django_filters

from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    customer_id = django_filters.CharFilter(field_name="customer_id")
    customerId = django_filters.CharFilter(field_name="customer_id")  # noqa: N815
    status = django_filters.CharFilter(field_name="status", lookup_expr="iexact")

    class Meta:
        model = Order
        fields = ["customer_id", "customerId", "status"]
