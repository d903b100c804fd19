"""
Storefront Django adapter URL routing.
"""

from django.urls import path

from adapters.django_api import views


urlpatterns = [
    path("products", views.products_list_view, name="product-list"),
    path("products/<str:product_id>", views.product_detail_view, name="product-detail"),
    path(
        "products/<str:product_id>/reviews",
        views.review_submit_view,
        name="product-review-submit",
    ),
    path("cart", views.cart_view, name="cart"),
    path("cart/add", views.cart_add_view, name="cart-add"),
    path("cart/update", views.cart_update_view, name="cart-update"),
    path("cart/remove", views.cart_remove_view, name="cart-remove"),
    path("discount/apply", views.discount_apply_view, name="discount-apply"),
    path("discount/remove", views.discount_remove_view, name="discount-remove"),
    path("checkout", views.checkout_view, name="checkout"),
    path("orders", views.orders_list_view, name="order-list"),
    path("orders/<str:order_id>", views.order_detail_view, name="order-detail"),
    path("payment/gateway/return", views.payment_return_view, name="payment-gateway-return"),
    path("payment/gateway/ipn", views.payment_ipn_view, name="payment-gateway-ipn"),
    path(
        "payment/gateway/<str:order_id>/start",
        views.payment_start_view,
        name="payment-gateway-start",
    ),
    path("wishlist", views.wishlist_view, name="wishlist"),
    path("wishlist/add", views.wishlist_add_view, name="wishlist-add"),
    path("wishlist/remove", views.wishlist_remove_view, name="wishlist-remove"),
    path("profile", views.profile_view, name="profile"),
    path("admin/dashboard", views.admin_dashboard_view, name="admin-dashboard"),
    path("admin/orders", views.admin_orders_view, name="admin-order-list"),
    path("admin/orders/<str:order_id>", views.admin_order_detail_view, name="admin-order-detail"),
    path(
        "admin/orders/<str:order_id>/status",
        views.admin_order_status_view,
        name="admin-order-status",
    ),
    path(
        "admin/orders/<str:order_id>/settle",
        views.admin_order_settle_view,
        name="admin-order-settle",
    ),
    path(
        "admin/orders/<str:order_id>/refund",
        views.admin_order_refund_view,
        name="admin-order-refund",
    ),
    path("admin/discounts", views.admin_discounts_view, name="admin-discounts"),
    path(
        "admin/discounts/<str:discount_id>",
        views.admin_discount_update_view,
        name="admin-discount-update",
    ),
    path(
        "admin/discounts/<str:discount_id>/deactivate",
        views.admin_discount_deactivate_view,
        name="admin-discount-deactivate",
    ),
    path("admin/products", views.admin_products_create_view, name="admin-product-create"),
    path(
        "admin/products/<str:product_id>",
        views.admin_product_update_view,
        name="admin-product-update",
    ),
    path(
        "admin/products/<str:product_id>/restock",
        views.admin_product_restock_view,
        name="admin-product-restock",
    ),
    path(
        "admin/products/<str:product_id>/delete",
        views.admin_product_delete_view,
        name="admin-product-delete",
    ),
    path("admin/categories", views.admin_categories_view, name="admin-categories"),
    path(
        "admin/categories/<str:category_id>",
        views.admin_category_update_view,
        name="admin-category-update",
    ),
    path(
        "admin/categories/<str:category_id>/delete",
        views.admin_category_delete_view,
        name="admin-category-delete",
    ),
    path("admin/customers", views.admin_customers_view, name="admin-customers"),
    path(
        "admin/customers/<str:customer_id>",
        views.admin_customer_detail_view,
        name="admin-customer-detail",
    ),
    path(
        "admin/customers/<str:customer_id>/role",
        views.admin_customer_role_view,
        name="admin-customer-role",
    ),
    path(
        "admin/customers/<str:customer_id>/delete",
        views.admin_customer_delete_view,
        name="admin-customer-delete",
    ),
]
