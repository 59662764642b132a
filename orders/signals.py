# Signal to keep order totals in step with their items
from .models import Order, OrderItem
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver


@receiver([post_save, post_delete], sender=OrderItem)
def update_order_totals_on_item_change(sender, instance, **kwargs):
    """Update order total when items are added/removed/modified"""
    try:
        order = Order.objects.get(pk=instance.order_id)
    except Order.DoesNotExist:
        # Order itself is being deleted
        return
    order.calculate_totals()
    order.save(update_fields=['total', 'updated_at'])
