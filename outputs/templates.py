"""Static HTML fragments used by the result renderer."""

HTML_STYLE = """
<style>
	.item-row {
		display: flex;
		padding: .5em 0;
		color: var(--vscode-foreground);
	}
	.item-row:hover {
		background-color: var(--vscode-list-hoverBackground);
	}
	.collapsed > .item-row.hide {
		display: none;
	}
	.title {
		color: var(--vscode-foreground) !important;
		font-size: 1em;
		text-decoration: none;
	}
	.title:hover {
		text-decoration: underline;
	}
	.title.repo {
		opacity: 70%;
		padding-right: 8px;
	}
	.label {
		font-size: .8em;
		margin: 0 2px;
		padding: 2px;
	}
	.label a {
		padding: 2px;
	}
	.status {
		font-size: .8em;
		opacity: 60%;
		padding-top: .5em;
	}
	.user {
		display: flex;
	}
	.user img {
		padding: 0.1em;
		min-width: 22px;
	}
	.item-state {
		flex: shrink;
		padding: 0 .3em;
		opacity: 60%;
	}
	.stats {
		text-align: center;
		font-size: .7em;
		opacity: 60%;
		padding-top: .6em;
	}
	.collapse {
		text-align: center;
		font-size: .9em;
		opacity: 60%;
		display: none;
		cursor: pointer;
		padding: 0.3em 0;
	}
	.large > .collapse {
		display: inherit;
	}
	.collapse > span {
		color: var(--vscode-button-foreground);
		background: var(--vscode-button-background);
		padding: 3px;
	}
	.large.collapsed > .collapse > .less {
		display: none;
	}
	.large:not(.collapsed) > .collapse > .more {
		display: none;
	}
	.item-row .start-working {
		display: none;
	}
	.item-row .start-working a {
		color: var(--vscode-foreground) !important;
		font-size: 0.9em;
		text-decoration: none;
	}
	.item-row:hover .start-working {
		display: inline;
	}
</style>
"""

CLOSED_ICON = (
    '<svg class="octicon octicon-issue-closed closed" viewBox="0 0 16 16" version="1.1" width="16" height="16" '
    'aria-hidden="true"><path fill-rule="evenodd" d="M7 10h2v2H7v-2zm2-6H7v5h2V4zm1.5 1.5l-1 1L12 9l4-4.5-1-1L12 '
    "7l-1.5-1.5zM8 13.7A5.71 5.71 0 012.3 8c0-3.14 2.56-5.7 5.7-5.7 1.83 0 3.45.88 4.5 2.2l.92-.92A6.947 6.947 0 "
    '008 1C4.14 1 1 4.14 1 8s3.14 7 7 7 7-3.14 7-7l-1.52 1.52c-.66 2.41-2.86 4.19-5.48 4.19v-.01z"></path></svg>'
)

OPEN_ICON = (
    '<svg class="octicon octicon-issue-opened open" viewBox="0 0 14 16" version="1.1" width="14" height="16" '
    'aria-hidden="true"><path fill-rule="evenodd" d="M7 2.3c3.14 0 5.7 2.56 5.7 5.7s-2.56 5.7-5.7 5.7A5.71 5.71 0 '
    "011.3 8c0-3.14 2.56-5.7 5.7-5.7zM7 1C3.14 1 0 4.14 0 8s3.14 7 7 7 7-3.14 7-7-3.14-7-7-7zm1 3H6v5h2V4zm0 "
    '6H6v2h2v-2z"></path></svg>'
)

COLLAPSE_CONTROL = (
    '<div class="collapse"><script>function toggle(element, more) '
    '{ element.parentNode.parentNode.classList.toggle("collapsed", !more) }</script>'
    '<span class="more" onclick="toggle(this, true)">▼ Show More</span>'
    '<span class="less" onclick="toggle(this, false)">▲ Show Less</span></div>'
)

STATS_SCRIPT = """<script>
	var node = document.currentScript.parentElement.querySelector(".stats");
	node.innerText = node.innerText.replace("{{NOW}}", new Date(Number(node.dataset['ts'])).toLocaleString());
</script>"""
