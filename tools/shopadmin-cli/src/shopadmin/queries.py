from .constants import PAGE_SIZES


SHOP_INFO = """
query {
  shop {
    id name email myshopifyDomain createdAt
    primaryDomain { host url }
    plan { displayName partnerDevelopment shopifyPlus }
    currencyCode timezoneAbbreviation unitSystem weightUnit
    features { storefront }
    billingAddress { country province city }
  }
}
"""

METAFIELDS_FRAGMENT = f"""
metafields(first: {PAGE_SIZES['metafields']}) {{
  edges {{ node {{ id namespace key value type definition {{ id }} }} }}
}}
"""

PRODUCTS_WITH_METAFIELDS = f"""
query ProductsWithMetafields($cursor: String) {{
  products(first: {PAGE_SIZES['products']}, after: $cursor) {{
    pageInfo {{ hasNextPage endCursor }}
    edges {{
      node {{
        id title handle
        {METAFIELDS_FRAGMENT}
      }}
    }}
  }}
}}
"""

VARIANTS_WITH_METAFIELDS = f"""
query VariantsWithMetafields($cursor: String) {{
  productVariants(first: {PAGE_SIZES['variants']}, after: $cursor) {{
    pageInfo {{ hasNextPage endCursor }}
    edges {{
      node {{
        id title sku
        product {{ title handle }}
        {METAFIELDS_FRAGMENT}
      }}
    }}
  }}
}}
"""

METAFIELD_DEFINITION_LOOKUP = """
query MetafieldDefinitionLookup($namespace: String!, $key: String!, $ownerType: MetafieldOwnerType!) {
  metafieldDefinitions(first: 1, namespace: $namespace, key: $key, ownerType: $ownerType) {
    edges { node { id namespace key name } }
  }
}
"""

METAFIELD_DEFINITION_CREATE = """
mutation MetafieldDefinitionCreate($definition: MetafieldDefinitionInput!) {
  metafieldDefinitionCreate(definition: $definition) {
    createdDefinition { id name namespace key }
    userErrors { field message }
  }
}
"""

METAFIELD_DEFINITION_DELETE = """
mutation MetafieldDefinitionDelete($id: ID!, $deleteAllAssociatedMetafields: Boolean!) {
  metafieldDefinitionDelete(id: $id, deleteAllAssociatedMetafields: $deleteAllAssociatedMetafields) {
    deletedDefinitionId
    userErrors { field message }
  }
}
"""

LIST_PRODUCTS = """
query ListProducts($first: Int!, $sortKey: ProductSortKeys, $reverse: Boolean) {
  products(first: $first, sortKey: $sortKey, reverse: $reverse) {
    edges { node { id title handle status vendor updatedAt } }
  }
}
"""

PRODUCT_DETAIL_FIELDS = """
id title description descriptionHtml handle status vendor productType tags
createdAt updatedAt publishedAt onlineStoreUrl
featuredImage { id url altText width height }
media(first: 250) {
  edges { node { ... on MediaImage { id alt image { url width height } } } }
}
variants(first: 100) {
  edges {
    node {
      id title sku price compareAtPrice inventoryQuantity
      selectedOptions { name value }
      metafields(first: 250) { edges { node { id namespace key type value } } }
    }
  }
}
metafields(first: 250) { edges { node { id namespace key type value } } }
options { id name values }
seo { title description }
"""

GET_PRODUCT_BY_ID = f"""
query GetProductById($id: ID!) {{
  product(id: $id) {{
    {PRODUCT_DETAIL_FIELDS}
  }}
}}
"""

GET_PRODUCT_BY_HANDLE = f"""
query GetProductByHandle($handle: String!) {{
  productByHandle(handle: $handle) {{
    {PRODUCT_DETAIL_FIELDS}
  }}
}}
"""

LIST_CATALOGS = """
query ListCatalogs($first: Int!) {
  catalogs(first: $first) {
    edges { node { id title status } }
  }
}
"""

CUSTOMERS_WITH_ORDERS = """
query CustomersWithOrders($first: Int!, $cursor: String, $query: String) {
  customers(first: $first, after: $cursor, query: $query) {
    edges { node { id email firstName lastName numberOfOrders } }
    pageInfo { hasNextPage endCursor }
  }
}
"""

CUSTOMER_ORDERS = """
query CustomerOrders($customerId: ID!, $first: Int!, $cursor: String) {
  customer(id: $customerId) {
    id
    orders(first: $first, after: $cursor) {
      edges {
        node {
          id name createdAt
          totalPriceSet { shopMoney { amount currencyCode } }
          lineItems(first: 250) {
            edges {
              node {
                id title sku quantity
                originalUnitPriceSet { shopMoney { amount currencyCode } }
                variant { id title selectedOptions { name value } }
              }
            }
          }
        }
      }
      pageInfo { hasNextPage endCursor }
    }
  }
}
"""
