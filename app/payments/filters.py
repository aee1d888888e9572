import django_filters as filters

from payments.models import Payment


class PaymentFilter(filters.FilterSet):
    created_after = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Payment
        fields = ["status", "therapist_id", "created_after", "created_before"]
