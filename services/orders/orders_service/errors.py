"""
Orders Service - ドメインエラー

エラーごとに別クラスとし、商品 ID や SKU は型付きフィールドとして持つ。
レスポンスボディにもそのまま載るので、呼び出し側は文字列を解析する必要がない。
"""

from service_common.errors import Conflict, NotFound


class CustomerNotFound(NotFound):
    code = "CLIENT_NOT_FOUND"

    def __init__(self, customer_id: int) -> None:
        self.customer_id = customer_id
        super().__init__(
            f"Customer {customer_id} does not exist or is not valid.",
            customer_id=customer_id,
        )


class ProductNotFound(NotFound):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int) -> None:
        self.product_id = product_id
        super().__init__(f"Product {product_id} does not exist.", product_id=product_id)


class OrderNotFound(NotFound):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: int) -> None:
        self.order_id = order_id
        super().__init__(f"Order {order_id} not found.", order_id=order_id)


class InsufficientStock(Conflict):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: int, sku: str, requested: int, available: int) -> None:
        self.product_id = product_id
        self.sku = sku
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {sku}: requested={requested}, available={available}.",
            product_id=product_id,
            sku=sku,
        )


class InvalidOrderStatus(Conflict):
    code = "INVALID_ORDER_STATUS"

    def __init__(self, order_id: int, status: str) -> None:
        self.order_id = order_id
        self.order_status = status
        super().__init__(
            f"Order {order_id} cannot be confirmed from status {status}.",
            order_id=order_id,
        )


class CancelWindowExpired(Conflict):
    code = "CANCEL_WINDOW_EXPIRED"

    def __init__(self, order_id: int, window_minutes: int) -> None:
        self.order_id = order_id
        self.window_minutes = window_minutes
        super().__init__(
            f"Order {order_id} can no longer be canceled: "
            f"the {window_minutes}-minute window has passed.",
            order_id=order_id,
        )


class IdempotencyConflict(Conflict):
    code = "IDEMPOTENCY_CONFLICT"

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__("The request is already being processed (idempotency conflict).")


class DuplicateSku(Conflict):
    code = "DUPLICATE_SKU"

    def __init__(self, sku: str) -> None:
        self.sku = sku
        super().__init__(f"SKU {sku} is already registered.", sku=sku)
